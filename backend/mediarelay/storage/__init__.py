"""
External state: the shared key-value store and the upstream object relay.

This service owns no bytes. Uploads live with the relay; counters and
credentials live in the key-value store.
"""
from mediarelay.storage.kv_store import KeyValueStore, KeyPage, StoreError, StoreUnavailableError
from mediarelay.storage.relay_client import RelayClient, RelayPayload, RelayResult

__all__ = [
    "KeyValueStore",
    "KeyPage",
    "StoreError",
    "StoreUnavailableError",
    "RelayClient",
    "RelayPayload",
    "RelayResult",
]
