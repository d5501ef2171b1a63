"""Client-side state synchronization."""

from worklog.client.store import StoreState, SyncStore

__all__ = ["StoreState", "SyncStore"]
