"""Transaction engine for credit accounts."""

import logging
from datetime import datetime
from decimal import Decimal
from typing import Callable

from credit_engine.clients.customer import CustomerGateway
from credit_engine.eligibility import ONE_PERSONAL_LOAN, EligibilityValidator
from credit_engine.exceptions import (
    AccountNotFoundError,
    BusinessRuleViolation,
    ConcurrentModificationError,
    ConfigurationError,
    DuplicateAccountError,
    InsufficientCreditError,
)
from credit_engine.models import (
    Account,
    AccountTerms,
    AccountType,
    CreditRequest,
    generate_account_id,
    generate_account_number,
)
from credit_engine.logging import log_context
from credit_engine.store.base import SINGLE_PERSONAL_LOAN_CONSTRAINT, AccountStore

logger = logging.getLogger(__name__)

CHARGE_CARDS_ONLY = "charges only apply to credit cards"
CHARGE_INACTIVE = "cannot charge inactive account"
PAYMENT_INACTIVE = "cannot make payment to inactive account"
PAYMENT_EXCEEDS_BALANCE = "payment cannot exceed current balance"


class TransactionEngine:
    """Create credit accounts and apply charges and payments.

    The engine keeps no mutable state of its own. Every mutation is a
    load -> check -> mutate -> conditional save against the store; when the
    save loses a race on the account version the whole sequence is replayed on
    fresh state, up to ``max_conflict_retries`` extra times. Rule violations
    and missing accounts are never retried.

    Parameters
    ----------
    store : AccountStore
        Durable account storage.
    customers : CustomerGateway
        Resolves account owners during creation.
    validator : EligibilityValidator | None
        Eligibility rules (default: ``EligibilityValidator()``).
    max_conflict_retries : int
        Replays allowed after a concurrent modification.
    clock : Callable[[], datetime]
        Timestamp source for ``created_at`` / ``updated_at``.
    """

    def __init__(
        self,
        store: AccountStore,
        customers: CustomerGateway,
        validator: EligibilityValidator | None = None,
        max_conflict_retries: int = 3,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self.store = store
        self.customers = customers
        self.validator = validator or EligibilityValidator()
        if max_conflict_retries < 0:
            raise ConfigurationError("max_conflict_retries must not be negative")
        self.max_conflict_retries = max_conflict_retries
        self._clock = clock

    def create(self, request: CreditRequest) -> Account:
        """Open a new account after checking the owner's eligibility.

        Raises
        ------
        CustomerNotFoundError
            If the customer service has no such customer.
        DependencyUnavailableError
            If the customer service cannot be reached.
        BusinessRuleViolation
            If the customer type may not hold the requested product.
        """
        with log_context(customer_id=request.customer_id):
            logger.debug("Creating %s for customer %s", request.account_type, request.customer_id)

            customer = self.customers.resolve(request.customer_id)
            existing = self.store.count_by_owner_and_type(request.customer_id, AccountType.PERSONAL_LOAN)
            decision = self.validator.validate(request.account_type, customer.customer_type, existing)
            if not decision.accepted:
                logger.warning(
                    "Rejected %s for %s customer %s: %s",
                    request.account_type,
                    customer.customer_type.value,
                    request.customer_id,
                    decision.reason,
                )
                raise BusinessRuleViolation(decision.reason or "account type not allowed")

            account = Account(
                account_id=generate_account_id(),
                account_number=generate_account_number(),
                account_type=AccountType(request.account_type),
                owner_id=request.customer_id,
                principal_amount=request.principal_amount,
                created_at=self._clock(),
                balance=Decimal("0"),
                credit_limit=request.principal_amount,
                interest_rate=request.interest_rate if request.interest_rate is not None else Decimal("0"),
                minimum_payment=request.minimum_payment,
                payment_due_day=request.payment_due_day,
                active=True,
            )

            try:
                stored = self.store.insert(account)
            except DuplicateAccountError as e:
                # A concurrent request won the race for the customer's only personal loan
                if e.constraint == SINGLE_PERSONAL_LOAN_CONSTRAINT:
                    logger.warning("Rejected concurrent personal loan for customer %s", request.customer_id)
                    raise BusinessRuleViolation(ONE_PERSONAL_LOAN) from e
                raise

            with log_context(account_id=stored.account_id):
                logger.info("Account created successfully: %s", stored.account_number)
            return stored

    def charge(self, account_id: str, amount: Decimal) -> Account:
        """Charge a credit card, moving headroom into the balance.

        Raises
        ------
        AccountNotFoundError
            If the account does not exist.
        BusinessRuleViolation
            If the account is not a card or is inactive.
        InsufficientCreditError
            If ``amount`` exceeds the available credit.
        """
        logger.debug("Making charge of %s to account %s", amount, account_id)

        def apply(account: Account) -> None:
            if not account.is_credit_card:
                raise BusinessRuleViolation(CHARGE_CARDS_ONLY)
            if not account.active:
                raise BusinessRuleViolation(CHARGE_INACTIVE)
            available = account.available_credit
            if amount > available:
                raise InsufficientCreditError(amount, available)
            account.balance += amount
            account.credit_limit = available - amount

        with log_context(account_id=account_id):
            account = self._mutate(account_id, apply)
            logger.info("Charge successful on %s. New balance: %s", account.account_number, account.balance)
        return account

    def payment(self, account_id: str, amount: Decimal) -> Account:
        """Pay down an account's balance; cards regain the paid headroom.

        Raises
        ------
        AccountNotFoundError
            If the account does not exist.
        BusinessRuleViolation
            If the account is inactive or ``amount`` exceeds the balance.
        """
        logger.debug("Making payment of %s to account %s", amount, account_id)

        def apply(account: Account) -> None:
            if not account.active:
                raise BusinessRuleViolation(PAYMENT_INACTIVE)
            if amount > account.balance:
                raise BusinessRuleViolation(PAYMENT_EXCEEDS_BALANCE)
            if account.is_credit_card:
                account.credit_limit = account.available_credit + amount
            account.balance -= amount

        with log_context(account_id=account_id):
            account = self._mutate(account_id, apply)
            logger.info("Payment successful on %s. New balance: %s", account.account_number, account.balance)
        return account

    def update(self, account_id: str, terms: AccountTerms) -> Account:
        """Overwrite interest rate, minimum payment and due day."""
        logger.debug("Updating account %s", account_id)

        def apply(account: Account) -> None:
            account.interest_rate = terms.interest_rate if terms.interest_rate is not None else Decimal("0")
            account.minimum_payment = terms.minimum_payment
            account.payment_due_day = terms.payment_due_day

        with log_context(account_id=account_id):
            account = self._mutate(account_id, apply)
            logger.info("Account updated successfully: %s", account_id)
        return account

    def delete(self, account_id: str) -> None:
        """Delete an account.

        Raises
        ------
        AccountNotFoundError
            If the account is already absent.
        """
        with log_context(account_id=account_id):
            logger.debug("Deleting account %s", account_id)
            self.find_by_id(account_id)
            if not self.store.delete(account_id):
                raise AccountNotFoundError(account_id)
            logger.info("Account deleted successfully: %s", account_id)

    def find_by_id(self, account_id: str) -> Account:
        account = self.store.get(account_id)
        if account is None:
            raise AccountNotFoundError(account_id)
        return account

    def find_by_account_number(self, account_number: str) -> Account:
        account = self.store.get_by_account_number(account_number)
        if account is None:
            raise AccountNotFoundError(account_number, field="account_number")
        return account

    def find_by_customer(self, customer_id: str) -> list[Account]:
        return self.store.list_by_owner(customer_id)

    def find_all(self) -> list[Account]:
        return self.store.list_all()

    def _mutate(self, account_id: str, apply: Callable[[Account], None]) -> Account:
        """Load, change and conditionally save an account, replaying on version conflicts."""
        attempts = self.max_conflict_retries + 1
        for attempt in range(1, attempts + 1):
            account = self.find_by_id(account_id)
            apply(account)
            account.updated_at = self._clock()
            try:
                return self.store.update(account)
            except ConcurrentModificationError:
                if attempt == attempts:
                    logger.warning("Giving up on account %s after %d conflicting updates", account_id, attempts)
                    raise
                logger.warning(
                    "Concurrent update on account %s, replaying (attempt %d/%d)",
                    account_id,
                    attempt,
                    attempts,
                )
        raise AssertionError("unreachable")
