"""Utility for resolving account names to accounts."""

from typing import Union

from finledger.domain.controller import LedgerController
from finledger.domain.entities import Account
from finledger.domain.errors import NotFoundError


async def resolve_account(controller: LedgerController, account: Union[str, int]) -> Account:
    """Resolve account name or ID to an account.

    Args:
        controller: LedgerController instance
        account: Account name (str) or ID (int or string representation of int)

    Returns:
        The account

    Raises:
        NotFoundError: If account is not found
    """
    try:
        account_id = int(account)
    except (ValueError, TypeError):
        account_id = None

    if account_id is not None:
        found = await controller.get_account(account_id)
        if found is None:
            raise NotFoundError(f"Account ID {account_id} not found")
        return found

    for candidate in await controller.get_accounts():
        if candidate.name == account:
            return candidate

    raise NotFoundError(f"Account '{account}' not found")
