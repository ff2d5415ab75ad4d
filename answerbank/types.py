"""
Data types for the answer bank.
"""

import re
from dataclasses import dataclass, field
from typing import Optional


# The fallback answer. Always present, never deleted, never a ranking candidate.
DEFAULT_ID = "default"

DEFAULT_CONTENT = "Sorry, I don't have an answer for that yet."

MAX_ID_LENGTH = 256

# IDs: printable characters minus control chars (\x00-\x1f, \x7f)
_ID_BLOCKED_RE = re.compile(r'[\x00-\x1f\x7f]')


def validate_id(id: str) -> None:
    """Validate a content ID: length and no control characters.

    Raises:
        ValueError: If the ID is empty, too long, or contains control chars
    """
    if not id or not id.strip() or len(id) > MAX_ID_LENGTH:
        raise ValueError(f"ID must be 1-{MAX_ID_LENGTH} characters")
    if _ID_BLOCKED_RE.search(id):
        raise ValueError(f"ID contains invalid characters: {id!r}")


def dedupe(values: list[str]) -> list[str]:
    """Drop exact duplicates, keeping first-seen order."""
    seen: set[str] = set()
    result = []
    for v in values:
        if v not in seen:
            seen.add(v)
            result.append(v)
    return result


def split_csv(value: Optional[str]) -> list[str]:
    """Split a comma-separated string into trimmed, non-empty entries."""
    if not value:
        return []
    return [part.strip() for part in value.split(",") if part.strip()]


@dataclass
class ContentItem:
    """
    A retrievable answer plus its metadata.

    Attributes:
        id: Externally assigned identifier, immutable once created
        content: Body text returned as the answer
        name: Display name (defaults to the id)
        keywords: Manually curated keywords, no duplicates
        embedding: Fixed-dimension vector, None until registered/regenerated
        recommended_ids: Directed "related content" edges, ordered
    """
    id: str
    content: str
    name: str = ""
    keywords: list[str] = field(default_factory=list)
    embedding: Optional[list[float]] = None
    recommended_ids: list[str] = field(default_factory=list)

    def __post_init__(self):
        if not self.name:
            self.name = self.id
        self.keywords = dedupe(self.keywords)
        self.recommended_ids = dedupe(self.recommended_ids)

    @property
    def has_embedding(self) -> bool:
        return bool(self.embedding)

    @property
    def is_default(self) -> bool:
        return self.id == DEFAULT_ID

    def copy(self) -> "ContentItem":
        """Detached copy; callers mutate copies, never cached snapshots."""
        return ContentItem(
            id=self.id,
            content=self.content,
            name=self.name,
            keywords=list(self.keywords),
            embedding=list(self.embedding) if self.embedding is not None else None,
            recommended_ids=list(self.recommended_ids),
        )

    def __str__(self) -> str:
        return f"{self.id} ({self.name}): {self.content[:60]}"


@dataclass
class MutationResult:
    """Outcome of a mutating operation, for caller-facing reporting.

    ``current`` holds the keywords or links after the change;
    ``removed`` lists what a removal actually took away; ``error`` names the
    exception class of a failure (``NotFound``, ``InvalidOperation``,
    ``BackingStoreUnavailable``).
    """
    success: bool
    message: str
    current: Optional[list[str]] = None
    removed: Optional[list[str]] = None
    error: Optional[str] = None

    @classmethod
    def ok(cls, message: str, **kwargs) -> "MutationResult":
        return cls(True, message, **kwargs)

    @classmethod
    def from_error(cls, exc: Exception) -> "MutationResult":
        return cls(False, str(exc), error=type(exc).__name__)

    def __bool__(self) -> bool:
        return self.success


@dataclass
class CleanupResult:
    """Outcome of purging a deleted id from every other item's links.

    ``error`` is set when the store could not be read, so nothing was scanned.
    """
    updated: int = 0
    failures: list[tuple[str, str]] = field(default_factory=list)
    error: Optional[str] = None


@dataclass
class BulkResult:
    """Aggregate outcome of a per-item batch (e.g. embedding regeneration).

    ``error`` is set when the batch could not start at all.
    """
    action: str = "Processed"
    total: int = 0
    succeeded: int = 0
    failures: list[tuple[str, str]] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def failed(self) -> int:
        return len(self.failures)

    @property
    def success(self) -> bool:
        return not self.failures and self.error is None

    @property
    def message(self) -> str:
        msg = f"{self.action} {self.succeeded}/{self.total} items."
        if self.error:
            msg += f" {self.error}"
        if self.failures:
            msg += f" {self.failed} failed: " + ", ".join(id for id, _ in self.failures)
        return msg


@dataclass(frozen=True)
class ScoredCandidate:
    """A ranking candidate with every signal that went into its score."""
    id: str
    keyword_score: float
    similarity: Optional[float]   # raw cosine, None when the item has no embedding
    embedding_score: float        # similarity after the acceptance floor
    score: float                  # aggregate


@dataclass(frozen=True)
class RankResult:
    """Selected content, or an explicit no-match."""
    id: Optional[str] = None
    content: Optional[str] = None
    score: Optional[float] = None

    @property
    def matched(self) -> bool:
        return self.id is not None

    @classmethod
    def no_match(cls, score: Optional[float] = None) -> "RankResult":
        return cls(id=None, content=None, score=score)


@dataclass(frozen=True)
class RelatedRef:
    """A recommended item surfaced alongside an answer."""
    id: str
    name: str


@dataclass
class Answer:
    """Answer to a query, already resolved to the default item on no-match."""
    id: str
    name: str
    content: str
    matched: bool
    score: Optional[float] = None
    related: list[RelatedRef] = field(default_factory=list)

    def to_dict(self) -> dict:
        """Serialize to JSON-ready dict."""
        from dataclasses import asdict
        return asdict(self)


@dataclass(frozen=True)
class LinkRef:
    """An outgoing link for display; ``exists`` is False for a dangling id."""
    id: str
    name: str
    exists: bool = True
