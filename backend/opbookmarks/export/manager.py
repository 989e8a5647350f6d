"""Export manager - orchestrates enumeration, planning, writing, and caching"""

import logging
from typing import Callable, Optional

from ..config import Settings
from ..models import Vault
from ..store import StoreClient, StoreError
from . import cache
from .cache import CacheError, CacheRecord
from .planner import ExportPlan, VaultPlan, plan
from .writer import write_items

logger = logging.getLogger(__name__)


class ExportManager:
    """Runs export cycles against a store client"""

    def __init__(self, client: StoreClient, settings: Settings):
        self.client = client
        self.settings = settings

    def run_cycle(
        self,
        progress_callback: Optional[Callable[[int, int, str], None]] = None,
    ) -> dict:
        """
        Perform one export cycle - only vaults whose content revision moved
        past the cached one get their items fetched and written.

        Args:
            progress_callback: Optional callback(current, total, message)

        Returns:
            Statistics dict

        Raises:
            StoreError: the accounts themselves could not be enumerated
        """
        settings = self.settings
        previous = cache.load(settings.cache_path)

        try:
            accounts = self.client.list_accounts(settings.account_filter)
        except StoreError as e:
            logger.error(f"Failed to load accounts: {e}")
            raise

        logger.info(f"Exporting bookmarks for accounts {[a.id for a in accounts]}")

        stats = {
            "accounts": len(accounts),
            "vaults": 0,
            "dirty_vaults": 0,
            "skipped_vaults": 0,
            "items_written": 0,
            "errors": [],
            "cache_saved": False,
        }

        # Collect the vaults for each account
        vaults_by_account: dict[str, list[Vault]] = {}
        for account in accounts:
            try:
                vaults_by_account[account.id] = self.client.list_vaults(account.id)
            except StoreError as e:
                error_msg = f"account {account.id}: failed to load vaults: {e}"
                logger.error(error_msg)
                stats["errors"].append(error_msg)

        export_plan = plan(accounts, vaults_by_account, previous)
        total = len(export_plan.entries)
        stats["vaults"] = total
        stats["skipped_vaults"] = len(export_plan.clean)

        if progress_callback:
            progress_callback(0, total, "Planning export...")

        for i, entry in enumerate(export_plan.entries):
            if entry.dirty:
                stats["dirty_vaults"] += 1
                self._export_vault(entry, export_plan, previous, stats)
                message = f"Exported: {entry.vault.name or entry.vault.id}"
            else:
                message = f"Unchanged: {entry.vault.name or entry.vault.id}"

            if progress_callback:
                progress_callback(i + 1, total, message)

        try:
            cache.save(export_plan.cache, settings.cache_path)
            stats["cache_saved"] = True
        except CacheError as e:
            logger.error(str(e))
            stats["errors"].append(str(e))

        logger.info(
            f"Metadata files updated: {stats['items_written']} items from "
            f"{stats['dirty_vaults']} changed vaults, {stats['skipped_vaults']} unchanged"
        )
        return stats

    def _export_vault(
        self,
        entry: VaultPlan,
        export_plan: ExportPlan,
        previous: CacheRecord,
        stats: dict,
    ) -> None:
        """Fetch and write the items of one dirty vault"""
        account, vault = entry.account, entry.vault

        try:
            entry.items = self.client.list_items(account.id, vault.id)
        except StoreError as e:
            error_msg = f"account {account.id} vault {vault.id}: failed to load items: {e}"
            logger.error(error_msg)
            stats["errors"].append(error_msg)
            _revert_vault(export_plan.cache, previous, account.id, vault.id)
            return

        result = write_items(self.settings.export_path, entry.items, vault, account)
        stats["items_written"] += len(result.written)
        stats["errors"].extend(result.errors)
        if not result.ok:
            _revert_vault(export_plan.cache, previous, account.id, vault.id)


def _revert_vault(
    new_cache: CacheRecord,
    previous: CacheRecord,
    account_id: str,
    vault_id: str,
) -> None:
    """Keep the previous snapshot of a vault that failed to export, so it is retried"""
    old = previous.get_vault(account_id, vault_id)
    if old is None:
        new_cache.remove_vault(account_id, vault_id)
    else:
        new_cache.put_vault(account_id, old)
