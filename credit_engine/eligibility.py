"""Eligibility rules for opening credit accounts."""

from dataclasses import dataclass
from typing import Callable

from credit_engine.models.enums import AccountType, CustomerType

ONE_PERSONAL_LOAN = "only one personal loan allowed"
PERSONAL_NO_BUSINESS_LOAN = "personal customers cannot hold business loans"
BUSINESS_NO_PERSONAL_LOAN = "business customers cannot hold personal loans"


@dataclass(frozen=True)
class EligibilityDecision:
    """Outcome of an eligibility check."""

    accepted: bool
    reason: str | None = None

    @classmethod
    def accept(cls) -> "EligibilityDecision":
        return cls(accepted=True)

    @classmethod
    def reject(cls, reason: str) -> "EligibilityDecision":
        return cls(accepted=False, reason=reason)


Rule = Callable[[int], EligibilityDecision]


def _allow(existing_personal_loans: int) -> EligibilityDecision:
    return EligibilityDecision.accept()


def _deny(reason: str) -> Rule:
    def rule(existing_personal_loans: int) -> EligibilityDecision:
        return EligibilityDecision.reject(reason)

    return rule


def _single_personal_loan(existing_personal_loans: int) -> EligibilityDecision:
    if existing_personal_loans == 0:
        return EligibilityDecision.accept()
    return EligibilityDecision.reject(ONE_PERSONAL_LOAN)


class EligibilityValidator:
    """Decide whether a customer may open a given credit product.

    Rules:
    - PERSONAL customers: one PERSONAL_LOAN, any number of CREDIT_CARDs,
      no BUSINESS_LOAN
    - BUSINESS customers: any number of BUSINESS_LOANs and CREDIT_CARDs,
      no PERSONAL_LOAN

    The personal loan count must come from a live store read; the validator
    itself holds no state.
    """

    RULES: dict[tuple[CustomerType, AccountType], Rule] = {
        (CustomerType.PERSONAL, AccountType.PERSONAL_LOAN): _single_personal_loan,
        (CustomerType.PERSONAL, AccountType.CREDIT_CARD): _allow,
        (CustomerType.PERSONAL, AccountType.BUSINESS_LOAN): _deny(PERSONAL_NO_BUSINESS_LOAN),
        (CustomerType.BUSINESS, AccountType.PERSONAL_LOAN): _deny(BUSINESS_NO_PERSONAL_LOAN),
        (CustomerType.BUSINESS, AccountType.BUSINESS_LOAN): _allow,
        (CustomerType.BUSINESS, AccountType.CREDIT_CARD): _allow,
    }

    def validate(
        self,
        requested_type: AccountType,
        customer_type: CustomerType,
        existing_personal_loans: int,
    ) -> EligibilityDecision:
        """Check a creation request against the rule table.

        Parameters
        ----------
        requested_type : AccountType
            Product the customer asked for.
        customer_type : CustomerType
            Type reported by the customer service.
        existing_personal_loans : int
            Current number of PERSONAL_LOAN accounts owned by the customer.

        Returns
        -------
        EligibilityDecision
            Accepted, or rejected with a reason.
        """
        rule = self.RULES[(CustomerType(customer_type), AccountType(requested_type))]
        return rule(existing_personal_loans)
