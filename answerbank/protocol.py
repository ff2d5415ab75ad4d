"""
Protocol definitions for the answer bank's storage collaborator.

The content store consumes an opaque key-value store. Local backends are
SQLite or in-memory; external backends register via the
``answerbank.backends`` entry point group and only need to satisfy
KeyValueStoreProtocol.
"""

from typing import Optional, Protocol, runtime_checkable


@runtime_checkable
class KeyValueStoreProtocol(Protocol):
    """
    Opaque text key-value store.

    Implemented by:
    - SqliteKVStore (local file)
    - MemoryKVStore (process-local, tests and ephemeral stores)

    Values are text: either a structured JSON record or raw content.
    Durability and replication are the implementation's concern.
    """

    def list_keys(self) -> list[str]: ...

    def get(self, key: str) -> Optional[str]: ...

    def put(self, key: str, value: str) -> None: ...

    def delete(self, key: str) -> bool: ...

    def close(self) -> None: ...
