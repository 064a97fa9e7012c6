"""Balance and limit invariant checks over stored accounts."""

from credit_engine.models import Account
from credit_engine.store.base import AccountStore


def audit_account(account: Account) -> list[str]:
    """Return the invariant violations for one account (empty = consistent)."""
    problems: list[str] = []
    if account.balance < 0:
        problems.append(f"{account.account_number}: negative balance {account.balance}")
    if account.credit_limit is not None and account.credit_limit < 0:
        problems.append(f"{account.account_number}: negative credit limit {account.credit_limit}")
    if account.is_credit_card and account.credit_limit is not None:
        total = account.balance + account.credit_limit
        if total != account.principal_amount:
            problems.append(
                f"{account.account_number}: balance + credit limit = {total}, "
                f"principal = {account.principal_amount}"
            )
    return problems


def audit_store(store: AccountStore) -> list[str]:
    """Audit every account in a store."""
    problems: list[str] = []
    for account in store.list_all():
        problems.extend(audit_account(account))
    return problems
