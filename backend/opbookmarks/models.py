"""Data models for the 1Password CLI records"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class OpModel(BaseModel):
    """Base for records parsed from `op --format json` output"""

    model_config = ConfigDict(extra="ignore")


class AccountSummary(OpModel):
    """One row of `op account list`"""
    url: str = ""
    email: str = ""
    user_uuid: str
    account_uuid: str = ""

    def matches(self, account_ids: set[str]) -> bool:
        return self.user_uuid in account_ids or self.account_uuid in account_ids


class Account(OpModel):
    """Account details from `op account get`"""
    id: str
    name: str = ""
    domain: str = ""
    type: str = ""
    state: str = ""
    created_at: datetime | None = None


class Vault(OpModel):
    """Vault details from `op vault get`.

    `content_version` is the content revision: the store bumps it whenever
    any item in the vault changes.
    """
    id: str
    name: str = ""
    attribute_version: int = 0
    content_version: int
    items: int = 0
    type: str = ""
    created_at: datetime | None = None
    updated_at: datetime | None = None


class VaultRef(OpModel):
    """Vault reference embedded in an item row"""
    id: str
    name: str = ""


class ItemURL(OpModel):
    label: str = ""
    primary: bool = False
    href: str


class Item(OpModel):
    """One row of `op item list`"""
    id: str
    title: str = ""
    tags: list[str] = Field(default_factory=list)
    category: str = ""
    version: int = 0
    vault: VaultRef
    last_edited_by: str = ""
    created_at: datetime | None = None
    updated_at: datetime | None = None
    urls: list[ItemURL] = Field(default_factory=list)
