"""
Pluggable storage backend factory.

Creates the key-value collaborator based on configuration. Local backends
are SQLite (default) and in-memory. External backends register via the
``answerbank.backends`` entry point group.

External backend packages provide a factory function::

    def create_kv_store(config: StoreConfig) -> KeyValueStoreProtocol:
        ...

and register it in their pyproject.toml::

    [project.entry-points."answerbank.backends"]
    my-backend = "my_package.backend:create_kv_store"
"""

from .config import StoreConfig
from .protocol import KeyValueStoreProtocol

KV_FILENAME = "content.db"


def create_kv_store(config: StoreConfig) -> KeyValueStoreProtocol:
    """
    Create the key-value collaborator from configuration.

    For ``backend = "sqlite"`` (default), opens ``content.db`` in the store
    directory. ``backend = "memory"`` keeps everything in process.
    Other values are loaded via the ``answerbank.backends`` entry point group.
    """
    if config.backend == "sqlite":
        from .kv_store import SqliteKVStore
        return SqliteKVStore(config.path / KV_FILENAME)
    if config.backend == "memory":
        from .kv_store import MemoryKVStore
        return MemoryKVStore()
    return _load_backend(config.backend, config)


def _load_backend(name: str, config: StoreConfig) -> KeyValueStoreProtocol:
    """Load a backend by entry point name."""
    from importlib.metadata import entry_points

    eps = entry_points(group="answerbank.backends")
    for ep in eps:
        if ep.name == name:
            factory = ep.load()
            return factory(config)

    available = [ep.name for ep in eps]
    if available:
        raise ValueError(
            f"Unknown backend: {name!r}. Available: {available}"
        )
    raise ValueError(
        f"Unknown backend: {name!r}. No backends registered. "
        f"Use 'sqlite' or 'memory', or install a backend package."
    )
