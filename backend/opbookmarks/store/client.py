"""Store client interface and error types"""

from typing import Protocol

from ..models import Account, Item, Vault


class StoreError(Exception):
    """Base error for failed credential store queries"""


class TransportError(StoreError):
    """The `op` tool is missing, exited with an error, or wrote to stderr"""


class DeserializationError(StoreError):
    """The store answered with output that does not parse as expected"""


class StoreClient(Protocol):
    """Read-only queries against the credential store"""
    
    def list_accounts(self, account_filter: set[str]) -> list[Account]:
        """List accounts, limited to `account_filter` when it is non-empty"""
        ...
    
    def list_vaults(self, account_id: str) -> list[Vault]:
        """List vaults of an account with their content revisions"""
        ...
    
    def list_items(self, account_id: str, vault_id: str) -> list[Item]:
        """List the items of one vault"""
        ...
