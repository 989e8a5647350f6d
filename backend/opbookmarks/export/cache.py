"""Version cache - last exported content revision per account/vault"""

import logging
import os
import tempfile
from pathlib import Path

from pydantic import Field, RootModel, ValidationError

from ..models import Vault

logger = logging.getLogger(__name__)


class CacheError(Exception):
    """The cache file could not be written"""


class CacheRecord(RootModel[dict[str, list[Vault]]]):
    """Account id -> vault snapshots as of the last successful export"""

    root: dict[str, list[Vault]] = Field(default_factory=dict)

    def account_ids(self) -> list[str]:
        return list(self.root)

    def vaults(self, account_id: str) -> list[Vault]:
        return self.root.get(account_id, [])

    def get_vault(self, account_id: str, vault_id: str) -> Vault | None:
        for vault in self.vaults(account_id):
            if vault.id == vault_id:
                return vault
        return None

    def put_vault(self, account_id: str, vault: Vault) -> None:
        """Insert or replace a vault snapshot"""
        vaults = self.root.setdefault(account_id, [])
        for i, existing in enumerate(vaults):
            if existing.id == vault.id:
                vaults[i] = vault
                return
        vaults.append(vault)

    def remove_vault(self, account_id: str, vault_id: str) -> None:
        if account_id in self.root:
            self.root[account_id] = [v for v in self.root[account_id] if v.id != vault_id]

    def vault_count(self) -> int:
        return sum(len(vaults) for vaults in self.root.values())


def load(path: Path) -> CacheRecord:
    """
    Load the cache record, failing soft.

    A missing, unreadable or malformed file yields an empty record, which
    makes the next export a full one.
    """
    try:
        content = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        logger.debug(f"No cache at {path}, exporting everything")
        return CacheRecord()
    except (OSError, UnicodeDecodeError) as e:
        logger.warning(f"Could not read cache {path}: {e}")
        return CacheRecord()

    try:
        return CacheRecord.model_validate_json(content)
    except ValidationError as e:
        logger.warning(f"Ignoring corrupt cache {path}: {e.error_count()} error(s)")
        return CacheRecord()


def revision_of(record: CacheRecord, account_id: str, vault_id: str) -> int:
    """Cached content revision, 0 if the account or vault is unknown"""
    vault = record.get_vault(account_id, vault_id)
    return vault.content_version if vault else 0


def save(record: CacheRecord, path: Path) -> None:
    """Write the whole record atomically: temp file in the same dir, then rename"""
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=path.parent, prefix=".cache-", suffix=".tmp")
    except OSError as e:
        raise CacheError(f"Could not write cache {path}: {e}") from e

    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(record.model_dump_json(indent=2))
        os.replace(tmp_path, path)
    except OSError as e:
        if os.path.exists(tmp_path):
            os.unlink(tmp_path)
        raise CacheError(f"Could not write cache {path}: {e}") from e
