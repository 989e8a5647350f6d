"""Export module - version cache, planning, metadata writing, and cycles"""

from .cache import CacheError, CacheRecord, load, revision_of, save
from .planner import ExportPlan, VaultPlan, plan
from .writer import ItemMetadata, WriteResult, item_metadata_path, write_items
from .manager import ExportManager

__all__ = [
    "CacheError",
    "CacheRecord",
    "load",
    "revision_of",
    "save",
    "ExportPlan",
    "VaultPlan",
    "plan",
    "ItemMetadata",
    "WriteResult",
    "item_metadata_path",
    "write_items",
    "ExportManager",
]
