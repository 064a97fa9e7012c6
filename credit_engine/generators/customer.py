"""Customer generator for synthetic workloads."""

from __future__ import annotations

from typing import Any, Iterator

from credit_engine.generators.base import BaseGenerator
from credit_engine.models import CustomerSnapshot, CustomerType


class CustomerGenerator(BaseGenerator):
    """Generate customer snapshots as the customer service would return them."""

    CUSTOMER_TYPES = list(CustomerType)
    CUSTOMER_TYPE_WEIGHTS = [0.75, 0.25]

    def generate(self, customer_type: CustomerType | None = None) -> CustomerSnapshot:
        """Generate a single customer.

        Parameters
        ----------
        customer_type : CustomerType | None
            Force a customer type; drawn from the weights when omitted.

        Returns
        -------
        CustomerSnapshot
            Generated customer.
        """
        if customer_type is None:
            customer_type = self.random.choices(
                self.CUSTOMER_TYPES, weights=self.CUSTOMER_TYPE_WEIGHTS, k=1
            )[0]
        return CustomerSnapshot(customer_id=self.fake.uuid4(), customer_type=customer_type)

    def profile(self, customer: CustomerSnapshot) -> dict[str, Any]:
        """Customer service response body for ``customer``.

        Business customers get a company name and EIN; personal customers a
        person's name and SSN. The engine reads only ``id`` and ``customerType``.
        """
        if customer.customer_type == CustomerType.BUSINESS:
            name, document_number, email = self.fake.company(), self.fake.ein(), self.fake.company_email()
        else:
            name, document_number, email = self.fake.name(), self.fake.ssn(), self.fake.email()
        return {
            "id": customer.customer_id,
            "customerType": customer.customer_type.value,
            "name": name,
            "email": email,
            "documentNumber": document_number,
            "phone": self.fake.phone_number(),
            "city": self.fake.city(),
        }

    def generate_batch(self, count: int) -> Iterator[CustomerSnapshot]:
        """Generate multiple customers.

        Parameters
        ----------
        count : int
            Number of customers to generate.

        Yields
        ------
        CustomerSnapshot
            Generated customers.
        """
        for _ in range(count):
            yield self.generate()
