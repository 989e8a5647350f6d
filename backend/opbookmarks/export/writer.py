"""Writes 1Password 7 style item metadata files"""

import logging
from dataclasses import dataclass, field
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field

from ..models import Account, Item, Vault

logger = logging.getLogger(__name__)

METADATA_EXTENSION = ".onepassword-item-metadata"

# 1Password 7 category UUID; not mapped from the item category yet
DEFAULT_CATEGORY_UUID = "001"


class ItemMetadata(BaseModel):
    """On-disk JSON shape of a `.onepassword-item-metadata` file"""

    model_config = ConfigDict(populate_by_name=True)

    uuid: str
    profile_uuid: str = Field(alias="profileUUID")
    vault_uuid: str = Field(alias="vaultUUID")
    category_uuid: str = Field(alias="categoryUUID")
    item_title: str = Field(alias="itemTitle")
    item_description: str = Field(alias="itemDescription")
    website_urls: list[str] = Field(alias="websiteURLs")
    account_name: str = Field(alias="accountName")
    vault_name: str = Field(alias="vaultName")
    category_plural_name: str = Field(alias="categoryPluralName")
    category_singular_name: str = Field(alias="categorySingularName")
    modified_at: int = Field(alias="modifiedAt")
    created_at: int = Field(alias="createdAt")

    @classmethod
    def from_item(cls, item: Item, vault: Vault, account: Account) -> "ItemMetadata":
        return cls(
            uuid=item.id,
            profile_uuid=account.id,
            vault_uuid=vault.id,
            category_uuid=DEFAULT_CATEGORY_UUID,
            item_title=item.title,
            item_description=f"Login from {vault.name}",
            website_urls=[url.href for url in item.urls],
            account_name="",
            vault_name=vault.name,
            # TODO: map LOGIN/SECURE_NOTE/... to the 1Password 7 plural names
            category_plural_name=item.category,
            category_singular_name=item.category,
            # timestamps are not filled in yet
            modified_at=0,
            created_at=0,
        )

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True)


@dataclass
class WriteResult:
    written: list[Path] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors


def item_metadata_path(export_path: Path, account_id: str, vault_id: str, item_id: str) -> Path:
    return export_path / account_id / f"{vault_id}_{item_id}{METADATA_EXTENSION}"


def write_items(
    export_path: Path,
    items: list[Item],
    vault: Vault,
    account: Account,
) -> WriteResult:
    """
    Write one metadata file per item under `{export_path}/{account_id}/`.

    A failing item is logged and recorded; the rest of the batch continues.
    """
    result = WriteResult()
    account_dir = export_path / account.id

    try:
        account_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        error_msg = f"account {account.id}: cannot create {account_dir}: {e}"
        logger.error(error_msg)
        result.errors.append(error_msg)
        return result

    for item in items:
        path = item_metadata_path(export_path, account.id, vault.id, item.id)
        try:
            path.write_text(ItemMetadata.from_item(item, vault, account).to_json(), encoding="utf-8")
        except OSError as e:
            error_msg = f"account {account.id} vault {vault.id} item {item.id}: {e}"
            logger.error(f"Failed to write metadata file: {error_msg}")
            result.errors.append(error_msg)
            continue
        result.written.append(path)

    logger.debug(f"Wrote {len(result.written)} metadata files for vault {vault.id}")
    return result
