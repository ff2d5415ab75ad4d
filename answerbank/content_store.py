"""
Content store: a cached view over the key-value collaborator.

The key-value store is the source of truth for:
- Content identity (externally assigned id)
- Body text and display name
- Curated keywords
- Embeddings
- Recommendation links

The snapshot cache is a disposable projection. It is filled lazily on the
first read and thrown away on every write; there is no time-based expiry.
"""

from __future__ import annotations

import json
import logging
import threading
from dataclasses import dataclass, field
from typing import Optional, Union

from .errors import BackingStoreUnavailable, InvalidOperation, NotFound
from .protocol import KeyValueStoreProtocol
from .types import DEFAULT_CONTENT, DEFAULT_ID, ContentItem, validate_id

logger = logging.getLogger(__name__)


# -----------------------------------------------------------------------------
# Stored value decoding
# -----------------------------------------------------------------------------

@dataclass
class StructuredItem:
    """A JSON record: content, name, keywords, embedding, recommendedIds."""
    content: str
    name: Optional[str] = None
    keywords: list[str] = field(default_factory=list)
    embedding: Optional[list[float]] = None
    recommended_ids: list[str] = field(default_factory=list)

    def to_item(self, id: str) -> ContentItem:
        return ContentItem(
            id=id,
            content=self.content,
            name=self.name or id,
            keywords=list(self.keywords),
            embedding=self.embedding,
            recommended_ids=list(self.recommended_ids),
        )


@dataclass
class RawItem:
    """Bare text stored without a record around it."""
    text: str

    def to_item(self, id: str) -> ContentItem:
        return ContentItem(id=id, content=self.text, name=id)


StoredValue = Union[StructuredItem, RawItem]


def _str_list(value) -> list[str]:
    if not isinstance(value, list):
        return []
    return [v for v in value if isinstance(v, str)]


def _embedding(value, dimension: Optional[int]) -> Optional[list[float]]:
    """Accept a numeric list of the store's dimension; anything else is absent."""
    if not isinstance(value, list) or not value:
        return None
    if not all(isinstance(v, (int, float)) and not isinstance(v, bool) for v in value):
        return None
    if dimension is not None and len(value) != dimension:
        return None
    return [float(v) for v in value]


def decode_value(text: str, dimension: Optional[int] = None) -> StoredValue:
    """
    Decode a stored value.

    Tries the structured record first; anything that is not a JSON object
    with a string ``content`` is raw text.
    """
    try:
        data = json.loads(text)
    except (json.JSONDecodeError, TypeError):
        return RawItem(text)
    if not isinstance(data, dict) or not isinstance(data.get("content"), str):
        return RawItem(text)

    embedding = _embedding(data.get("embedding"), dimension)
    if embedding is None and data.get("embedding"):
        logger.debug("Ignoring stored embedding that does not match dimension %s", dimension)

    name = data.get("name")
    return StructuredItem(
        content=data["content"],
        name=name if isinstance(name, str) else None,
        keywords=_str_list(data.get("keywords")),
        embedding=embedding,
        recommended_ids=_str_list(data.get("recommendedIds")),
    )


def encode_item(item: ContentItem) -> str:
    """Encode an item as a structured record (always the structured form)."""
    return json.dumps({
        "content": item.content,
        "name": item.name,
        "keywords": item.keywords,
        "embedding": item.embedding or [],
        "recommendedIds": item.recommended_ids,
    }, ensure_ascii=False)


# -----------------------------------------------------------------------------
# Snapshot cache
# -----------------------------------------------------------------------------

class SnapshotCache:
    """
    Single cell holding the hydrated snapshot.

    Every invalidate() bumps a generation counter. A hydration records the
    generation it started at and install() refuses the snapshot if a write
    happened in between, so a racing reader can never put stale data back.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._snapshot: Optional[dict[str, ContentItem]] = None
        self._generation = 0

    @property
    def generation(self) -> int:
        with self._lock:
            return self._generation

    def get(self) -> Optional[dict[str, ContentItem]]:
        with self._lock:
            return self._snapshot

    def install(self, snapshot: dict[str, ContentItem], generation: int) -> bool:
        """Install a snapshot hydrated at ``generation``. Returns False if stale."""
        with self._lock:
            if generation != self._generation:
                return False
            self._snapshot = snapshot
            return True

    def invalidate(self) -> None:
        with self._lock:
            self._snapshot = None
            self._generation += 1


# -----------------------------------------------------------------------------
# Content store
# -----------------------------------------------------------------------------

class ContentStore:
    """
    Sole owner of content item state.

    Reads never fail: a missing id falls back to the default item, and an
    unavailable collaborator degrades to a read-only set holding only the
    default item. Writes, and the strict reads they depend on, raise
    BackingStoreUnavailable in that state.
    """

    def __init__(
        self,
        kv: Optional[KeyValueStoreProtocol],
        *,
        dimension: Optional[int] = None,
        default_content: str = DEFAULT_CONTENT,
    ):
        """
        Args:
            kv: Key-value collaborator, or None when no backend is bound
            dimension: Embedding dimension; stored vectors of another length
                are read as absent
            default_content: Body of the built-in default item, used when
                the collaborator holds none
        """
        self._kv = kv
        self._dimension = dimension
        self._default_content = default_content
        self._cache = SnapshotCache()

    @property
    def available(self) -> bool:
        """True when a backing collaborator is bound."""
        return self._kv is not None

    def _builtin_default(self) -> ContentItem:
        return ContentItem(id=DEFAULT_ID, content=self._default_content, name=DEFAULT_ID)

    def _hydrate(self) -> dict[str, ContentItem]:
        """Read every entry from the collaborator."""
        items: dict[str, ContentItem] = {}
        for key in self._kv.list_keys():
            value = self._kv.get(key)
            if value is None:
                continue  # deleted between list and get
            items[key] = decode_value(value, self._dimension).to_item(key)
        if DEFAULT_ID not in items:
            items[DEFAULT_ID] = self._builtin_default()
        logger.debug("Hydrated content snapshot: %d items", len(items))
        return items

    def _snapshot(self, strict: bool = False) -> dict[str, ContentItem]:
        """
        Cached snapshot, hydrating on a miss. Never mutate the result.

        When the collaborator is missing or failing, a lenient read gets the
        default-only set. A strict read (every read a write depends on)
        raises BackingStoreUnavailable instead, so fallback data is never
        written back.
        """
        cached = self._cache.get()
        if cached is not None:
            return cached
        if self._kv is None:
            if strict:
                raise BackingStoreUnavailable()
            return {DEFAULT_ID: self._builtin_default()}

        generation = self._cache.generation
        try:
            items = self._hydrate()
        except Exception as e:
            if strict:
                raise BackingStoreUnavailable(f"Backing store read failed: {e}") from e
            # Degraded snapshots are not cached; the next read retries
            logger.warning("Backing store read failed, serving default only: %s", e)
            return {DEFAULT_ID: self._builtin_default()}
        self._cache.install(items, generation)
        return items

    # -------------------------------------------------------------------------
    # Read Operations
    # -------------------------------------------------------------------------

    def get(self, id: str) -> ContentItem:
        """Get an item by id; the default item if the id is absent."""
        snapshot = self._snapshot()
        item = snapshot.get(id) or snapshot[DEFAULT_ID]
        return item.copy()

    def find(self, id: str, *, strict: bool = False) -> Optional[ContentItem]:
        """Get an item by id, or None if absent.

        Raises:
            BackingStoreUnavailable: With ``strict``, if the store can't be read
        """
        item = self._snapshot(strict).get(id)
        return item.copy() if item is not None else None

    def exists(self, id: str, *, strict: bool = False) -> bool:
        return id in self._snapshot(strict)

    def list(self, *, strict: bool = False) -> list[ContentItem]:
        """All items in the current snapshot, in storage order.

        Raises:
            BackingStoreUnavailable: With ``strict``, if the store can't be read
        """
        return [item.copy() for item in self._snapshot(strict).values()]

    def ids(self) -> list[str]:
        return list(self._snapshot())

    # -------------------------------------------------------------------------
    # Write Operations
    # -------------------------------------------------------------------------

    def _require_backend(self) -> KeyValueStoreProtocol:
        if self._kv is None:
            raise BackingStoreUnavailable()
        return self._kv

    def put(self, item: ContentItem) -> None:
        """
        Insert or update an item and invalidate the cache.

        Raises:
            BackingStoreUnavailable: No collaborator, or the write failed
            InvalidOperation: Invalid id
        """
        kv = self._require_backend()
        try:
            validate_id(item.id)
        except ValueError as e:
            raise InvalidOperation(str(e)) from e
        try:
            kv.put(item.id, encode_item(item))
        except Exception as e:
            raise BackingStoreUnavailable(f'Failed to write "{item.id}": {e}') from e
        finally:
            self._cache.invalidate()
        logger.info("Stored %s", item.id)

    def delete(self, id: str) -> None:
        """
        Remove an item and invalidate the cache.

        This does not touch other items' links; go through
        AnswerBank.delete, which runs the link cleanup pass.

        Raises:
            InvalidOperation: Deleting the default item
            BackingStoreUnavailable: No collaborator, the store can't be read,
                or the delete failed
            NotFound: The id is absent
        """
        if id == DEFAULT_ID:
            raise InvalidOperation("The default item cannot be deleted")
        kv = self._require_backend()
        if not self.exists(id, strict=True):
            raise NotFound(id)
        try:
            kv.delete(id)
        except Exception as e:
            raise BackingStoreUnavailable(f'Failed to delete "{id}": {e}') from e
        finally:
            self._cache.invalidate()
        logger.info("Deleted %s", id)

    def invalidate(self) -> None:
        """Drop the cached snapshot; the next read re-hydrates."""
        self._cache.invalidate()
