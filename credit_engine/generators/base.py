"""Base generator class for synthetic workloads."""

from __future__ import annotations

import random
from abc import ABC
from decimal import Decimal

from faker import Faker


class BaseGenerator(ABC):
    """Base class for all workload generators.

    Provides a Faker instance and a private ``random.Random`` seeded for
    reproducibility.

    Parameters
    ----------
    seed : int | None
        Random seed for reproducibility.
    locale : str
        Faker locale (default ``en_US``).
    """

    def __init__(self, seed: int | None = None, locale: str = "en_US") -> None:
        self.fake = Faker(locale)
        self.random = random.Random(seed)
        if seed is not None:
            self.fake.seed_instance(seed)

    def money(self, low: int, high: int) -> Decimal:
        """Random amount with two decimal places in ``[low, high]``."""
        cents = self.random.randint(low * 100, high * 100)
        return Decimal(cents) / 100
