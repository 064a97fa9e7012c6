"""Credit request generator for synthetic workloads."""

from __future__ import annotations

from decimal import Decimal
from typing import Iterator

from credit_engine.generators.base import BaseGenerator
from credit_engine.models import AccountType, CreditRequest, CustomerSnapshot, CustomerType


class CreditRequestGenerator(BaseGenerator):
    """Generate account creation requests and transaction amounts.

    Products are drawn per customer type; ``eligible_only`` restricts the draw
    to products the eligibility rules can accept.
    """

    PRODUCTS = {
        CustomerType.PERSONAL: [AccountType.CREDIT_CARD, AccountType.PERSONAL_LOAN, AccountType.BUSINESS_LOAN],
        CustomerType.BUSINESS: [AccountType.CREDIT_CARD, AccountType.BUSINESS_LOAN, AccountType.PERSONAL_LOAN],
    }
    PRODUCT_WEIGHTS = [0.6, 0.3, 0.1]

    # Principal ranges by product (whole currency units)
    PRINCIPAL_RANGES = {
        AccountType.CREDIT_CARD: (500, 20000),
        AccountType.PERSONAL_LOAN: (1000, 50000),
        AccountType.BUSINESS_LOAN: (10000, 500000),
    }

    def generate(
        self,
        customer: CustomerSnapshot,
        account_type: AccountType | None = None,
        eligible_only: bool = False,
    ) -> CreditRequest:
        """Generate a creation request for a customer.

        Parameters
        ----------
        customer : CustomerSnapshot
            Owner of the requested account.
        account_type : AccountType | None
            Force a product; drawn from the weights when omitted.
        eligible_only : bool
            Only draw the two products the customer type may hold.

        Returns
        -------
        CreditRequest
            Generated request.
        """
        if account_type is None:
            products = self.PRODUCTS[customer.customer_type]
            weights = self.PRODUCT_WEIGHTS
            if eligible_only:
                products, weights = products[:2], weights[:2]
            account_type = self.random.choices(products, weights=weights, k=1)[0]

        low, high = self.PRINCIPAL_RANGES[account_type]
        principal = self.money(low, high)
        return CreditRequest(
            account_type=account_type,
            customer_id=customer.customer_id,
            principal_amount=principal,
            interest_rate=Decimal(self.random.randint(50, 450)) / 100,
            minimum_payment=(principal * Decimal("0.05")).quantize(Decimal("0.01")),
            payment_due_day=self.random.randint(1, 28),
        )

    def amounts(self, count: int, low: int = 1, high: int = 500) -> Iterator[Decimal]:
        """Yield charge or payment amounts.

        Parameters
        ----------
        count : int
            Number of amounts.
        low, high : int
            Bounds in whole currency units.

        Yields
        ------
        Decimal
            Positive amounts with two decimal places.
        """
        for _ in range(count):
            yield self.money(low, high)
