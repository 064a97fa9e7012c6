"""Synthetic customers and requests for exercising the engine."""

from credit_engine.generators.customer import CustomerGenerator
from credit_engine.generators.requests import CreditRequestGenerator

__all__ = ["CreditRequestGenerator", "CustomerGenerator"]
