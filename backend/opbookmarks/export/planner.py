"""Export planner - decides which vaults need their items re-fetched"""

from dataclasses import dataclass, field

from ..models import Account, Item, Vault
from .cache import CacheRecord, revision_of


@dataclass
class VaultPlan:
    """Planned work for one vault of one account"""
    account: Account
    vault: Vault
    dirty: bool
    cached_version: int
    items: list[Item] = field(default_factory=list)


@dataclass
class ExportPlan:
    """Per-vault plan entries plus the cache to persist after the cycle"""
    entries: list[VaultPlan]
    cache: CacheRecord

    @property
    def dirty(self) -> list[VaultPlan]:
        return [e for e in self.entries if e.dirty]

    @property
    def clean(self) -> list[VaultPlan]:
        return [e for e in self.entries if not e.dirty]

    def items_by_vault(self) -> dict[tuple[str, str], list[Item]]:
        """(account id, vault id) -> items to write; empty for clean vaults"""
        return {(e.account.id, e.vault.id): e.items for e in self.entries}


def plan(
    accounts: list[Account],
    vaults_by_account: dict[str, list[Vault]],
    cache: CacheRecord,
) -> ExportPlan:
    """
    Build the export plan. Pure: reads its inputs, never mutates them.

    Args:
        accounts: Accounts enumerated this cycle
        vaults_by_account: account id -> vaults; accounts whose vault listing
            failed are absent and get excluded from the plan
        cache: Cache record loaded at the start of the cycle

    Returns:
        ExportPlan whose cache holds every vault seen this cycle at its
        current content revision
    """
    entries = []
    new_cache = CacheRecord()

    for account in accounts:
        if account.id not in vaults_by_account:
            continue

        new_cache.root[account.id] = []
        for vault in vaults_by_account[account.id]:
            cached_version = revision_of(cache, account.id, vault.id)
            entries.append(VaultPlan(
                account=account,
                vault=vault,
                dirty=vault.content_version > cached_version,
                cached_version=cached_version,
            ))
            new_cache.put_vault(account.id, vault.model_copy())

    return ExportPlan(entries=entries, cache=new_cache)
