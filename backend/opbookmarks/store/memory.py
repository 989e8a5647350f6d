"""In-memory store client for tests and dry runs"""

from dataclasses import dataclass, field

from ..models import Account, Item, Vault
from .client import TransportError


@dataclass
class InMemoryStore:
    """
    Fake store holding accounts, vaults and items in dictionaries.
    
    Every query is appended to `calls` as a tuple, e.g.
    ("list_items", account_id, vault_id). Keys added to `failures` make the
    matching query raise TransportError:
        ("list_accounts",), ("list_vaults", account_id),
        ("list_items", account_id, vault_id)
    """
    accounts: list[Account] = field(default_factory=list)
    vaults: dict[str, list[Vault]] = field(default_factory=dict)
    items: dict[tuple[str, str], list[Item]] = field(default_factory=dict)
    failures: set[tuple[str, ...]] = field(default_factory=set)
    calls: list[tuple[str, ...]] = field(default_factory=list)
    
    def _record(self, *call: str) -> None:
        self.calls.append(call)
        if call in self.failures:
            raise TransportError(f"simulated failure: {' '.join(call)}")
    
    def calls_to(self, operation: str) -> list[tuple[str, ...]]:
        return [c for c in self.calls if c[0] == operation]
    
    def list_accounts(self, account_filter: set[str]) -> list[Account]:
        self._record("list_accounts")
        if not account_filter:
            return list(self.accounts)
        return [a for a in self.accounts if a.id in account_filter]
    
    def list_vaults(self, account_id: str) -> list[Vault]:
        self._record("list_vaults", account_id)
        return list(self.vaults.get(account_id, []))
    
    def list_items(self, account_id: str, vault_id: str) -> list[Item]:
        self._record("list_items", account_id, vault_id)
        return list(self.items.get((account_id, vault_id), []))
