"""Incremental watch-history sync: snapshot models, merge, projection and engine."""

from recvault.services.sync.engine import IncrementalSyncEngine, account_digest
from recvault.services.sync.merge import (
    MergeOutcome,
    activity_timestamp,
    item_identifier,
    merge_items,
)
from recvault.services.sync.models import (
    ProcessedPreferences,
    RatingBucket,
    RawSyncDataset,
    SyncMode,
    SyncResult,
    SyncStatus,
    WeightedName,
    YearRange,
)
from recvault.services.sync.preferences import project_preferences

__all__ = [
    "IncrementalSyncEngine",
    "MergeOutcome",
    "ProcessedPreferences",
    "RatingBucket",
    "RawSyncDataset",
    "SyncMode",
    "SyncResult",
    "SyncStatus",
    "WeightedName",
    "YearRange",
    "account_digest",
    "activity_timestamp",
    "item_identifier",
    "merge_items",
    "project_preferences",
]
