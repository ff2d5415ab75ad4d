"""
Core API for the answer bank.

AnswerBank wires the content store, link graph and ranker together and is
the boundary where failures become structured results:
- register(): embed → store
- ask(): rank → resolve to an item (default on no-match) → related links
- keywords / links / delete / regenerate: mutate through the content store
"""

import logging
import sqlite3
from pathlib import Path
from typing import Optional

from .backend import create_kv_store
from .config import StoreConfig, get_default_store_path, load_or_create_config
from .content_store import ContentStore
from .embeddings import HashEmbeddingProvider
from .errors import AnswerBankError, BackingStoreUnavailable, InvalidOperation, NotFound
from .links import LinkGraph
from .markdown_loader import list_markdown_files, load_markdown_file
from .protocol import KeyValueStoreProtocol
from .ranker import HybridRanker
from .types import (
    DEFAULT_ID,
    Answer,
    BulkResult,
    ContentItem,
    LinkRef,
    MutationResult,
    RankResult,
    RelatedRef,
    ScoredCandidate,
    dedupe,
    validate_id,
)

logger = logging.getLogger(__name__)


def _check_id(id: str) -> None:
    try:
        validate_id(id)
    except ValueError as e:
        raise InvalidOperation(str(e)) from e


class AnswerBank:
    """
    A corpus of pre-authored answers with hybrid retrieval.

    Example:
        bank = AnswerBank()
        bank.register("billing", "Open Settings > Billing to pay.", keywords=["invoice"])
        answer = bank.ask("how do I pay my invoice?")
    """

    def __init__(
        self,
        store_path: Optional[str | Path] = None,
        *,
        config: Optional[StoreConfig] = None,
        kv_store: Optional[KeyValueStoreProtocol] = None,
        ops_log: bool = True,
    ) -> None:
        """
        Open (or create) an answer bank.

        Args:
            store_path: Store directory. Uses ANSWERBANK_STORE_PATH or
                ~/.answerbank if not specified.
            config: Explicit configuration (skips reading answerbank.toml)
            kv_store: Explicit key-value collaborator (skips the backend factory)
            ops_log: Write an operations log into the store directory
        """
        if config is None:
            path = Path(store_path).expanduser().resolve() if store_path else get_default_store_path()
            config = load_or_create_config(path)
        self._config = config

        self._ops_log_handler = None
        if ops_log:
            from .logging_config import configure_ops_log
            try:
                self._ops_log_handler = configure_ops_log(config.path)
            except OSError as e:
                logger.debug("Could not open ops log in %s: %s", config.path, e)

        if kv_store is None:
            try:
                kv_store = create_kv_store(config)
            except (OSError, sqlite3.Error, ValueError) as e:
                # Read-only, default-only mode; every write reports unavailability
                logger.error("Backing store unavailable (%s): %s", config.backend, e)
                kv_store = None
        self._kv = kv_store

        self._embedder = HashEmbeddingProvider.from_config(config.embedding)
        self._store = ContentStore(
            kv_store,
            dimension=self._embedder.dimension,
            default_content=config.default_content,
        )
        self._links = LinkGraph(self._store)
        self._ranker = HybridRanker(self._store, self._embedder, config.ranking)

    @property
    def config(self) -> StoreConfig:
        return self._config

    @property
    def store(self) -> ContentStore:
        return self._store

    @property
    def available(self) -> bool:
        """False when running read-only without a backing store."""
        return self._store.available

    # -------------------------------------------------------------------------
    # Read Operations
    # -------------------------------------------------------------------------

    def get(self, id: str) -> ContentItem:
        """Item by id, falling back to the default item."""
        return self._store.get(id)

    def find(self, id: str) -> Optional[ContentItem]:
        """Item by id, or None if absent."""
        return self._store.find(id)

    def list_items(self) -> list[ContentItem]:
        return self._store.list()

    def view_keywords(self, id: str) -> Optional[list[str]]:
        item = self._store.find(id)
        return item.keywords if item is not None else None

    def view_links(self, id: str) -> Optional[list[LinkRef]]:
        return self._links.view_links(id)

    # -------------------------------------------------------------------------
    # Query Operations
    # -------------------------------------------------------------------------

    def rank(self, query: str) -> list[ScoredCandidate]:
        return self._ranker.rank(query)

    def best_match(self, query: str) -> RankResult:
        return self._ranker.best_match(query)

    def ask(self, question: str) -> Answer:
        """
        Answer a question with the best matching item.

        A no-match resolves to the default item. Existing recommendations of
        the chosen item are attached as related content; links to ids that
        no longer exist are skipped.
        """
        match = self._ranker.best_match(question or "")
        item = self._store.get(match.id if match.matched else DEFAULT_ID)

        related = []
        for rid in item.recommended_ids:
            linked = self._store.find(rid)
            if linked is not None:
                related.append(RelatedRef(id=linked.id, name=linked.name))

        return Answer(
            id=item.id,
            name=item.name,
            content=item.content,
            matched=match.matched,
            score=match.score,
            related=related,
        )

    # -------------------------------------------------------------------------
    # Write Operations
    # -------------------------------------------------------------------------

    def register(
        self,
        id: str,
        content: str,
        name: Optional[str] = None,
        keywords: Optional[list[str]] = None,
        *,
        replace: bool = False,
    ) -> MutationResult:
        """
        Register content under an id, computing a fresh embedding.

        Re-registering identical content is idempotent. Different content
        for an existing id is rejected unless ``replace`` is set. Existing
        links survive re-registration; keywords and name are kept unless
        new ones are given.
        """
        try:
            item = self._register(id, content, name, keywords, replace)
        except AnswerBankError as e:
            return MutationResult.from_error(e)

        message = f'Registered "{item.id}"'
        if item.keywords:
            message += f" ({len(item.keywords)} keyword(s))"
        return MutationResult.ok(message, current=item.keywords)

    def _register(
        self,
        id: str,
        content: str,
        name: Optional[str],
        keywords: Optional[list[str]],
        replace: bool,
    ) -> ContentItem:
        _check_id(id)
        if not content or not content.strip():
            raise InvalidOperation("Content is required")

        existing = self._store.find(id, strict=True)
        if existing is not None and not replace and existing.content != content:
            raise InvalidOperation(
                f'"{id}" is already registered with different content; use replace to overwrite'
            )

        if keywords is None:
            keywords = existing.keywords if existing else []
        item = ContentItem(
            id=id,
            content=content,
            name=name or (existing.name if existing else id),
            keywords=dedupe([k.strip() for k in keywords if k and k.strip()]),
            embedding=self._embedder.embed(content),
            recommended_ids=existing.recommended_ids if existing else [],
        )
        self._store.put(item)
        return item

    def delete(self, id: str) -> MutationResult:
        """
        Delete an item and purge it from every other item's links.

        The default item cannot be deleted.
        """
        try:
            _check_id(id)
            self._store.delete(id)
        except AnswerBankError as e:
            return MutationResult.from_error(e)

        cleanup = self._links.cleanup_on_delete(id)
        message = f'Deleted "{id}".'
        if cleanup.updated:
            message += f" {cleanup.updated} item(s) that linked to it were updated."
        if cleanup.failures:
            failed = ", ".join(fid for fid, _ in cleanup.failures)
            message += f" Could not update links on: {failed}."
        if cleanup.error:
            message += f" Links to it were not cleaned up: {cleanup.error}."
        return MutationResult.ok(message, removed=[id])

    def add_keywords(self, id: str, keywords: list[str]) -> MutationResult:
        """Add curated keywords; keywords already present are skipped."""
        cleaned = dedupe([k.strip() for k in keywords if k and k.strip()])
        try:
            if not cleaned:
                raise InvalidOperation("At least one keyword is required")
            item = self._store.find(id, strict=True)
            if item is None:
                raise NotFound(id)
            added = [k for k in cleaned if k not in item.keywords]
            if not added:
                raise InvalidOperation(f'"{id}" already has all of these keywords')
            item.keywords = item.keywords + added
            self._store.put(item)
        except AnswerBankError as e:
            return MutationResult.from_error(e)

        return MutationResult.ok(
            f'Added {len(added)} keyword(s) to "{id}"', current=item.keywords,
        )

    def remove_keywords(self, id: str, keywords: Optional[list[str]] = None) -> MutationResult:
        """Remove the given keywords, or all of them when none are given."""
        wanted = dedupe([k.strip() for k in keywords or [] if k and k.strip()])
        try:
            item = self._store.find(id, strict=True)
            if item is None:
                raise NotFound(id)
            if wanted:
                removed = [k for k in item.keywords if k in wanted]
                if not removed:
                    raise InvalidOperation(f'"{id}" has none of these keywords')
            else:
                if not item.keywords:
                    raise InvalidOperation(f'"{id}" has no keywords to remove')
                removed = list(item.keywords)
            item.keywords = [k for k in item.keywords if k not in removed]
            self._store.put(item)
        except AnswerBankError as e:
            return MutationResult.from_error(e)

        return MutationResult.ok(
            f'Removed {len(removed)} keyword(s) from "{id}"',
            current=item.keywords,
            removed=removed,
        )

    def add_link(self, target_id: str, recommended_id: str) -> MutationResult:
        return self._links.add_link(target_id, recommended_id)

    def remove_link(self, target_id: str, recommended_id: Optional[str] = None) -> MutationResult:
        return self._links.remove_link(target_id, recommended_id)

    # -------------------------------------------------------------------------
    # Bulk Operations
    # -------------------------------------------------------------------------

    def regenerate_embeddings(self) -> BulkResult:
        """
        Recompute and persist every item's embedding, one item at a time.

        A failing item is logged and recorded; the rest still run. Nothing is
        written when the store cannot be read.
        """
        result = BulkResult(action="Regenerated embeddings for")
        try:
            items = self._store.list(strict=True)
        except BackingStoreUnavailable as e:
            logger.warning("Embedding regeneration skipped: %s", e)
            result.error = str(e)
            return result
        for item in items:
            result.total += 1
            item.embedding = self._embedder.embed(item.content)
            try:
                self._store.put(item)
            except AnswerBankError as e:
                logger.warning("Embedding regeneration failed for %s: %s", item.id, e)
                result.failures.append((item.id, str(e)))
                continue
            result.succeeded += 1
        logger.info(result.message)
        return result

    def import_markdown(self, directory: str | Path) -> BulkResult:
        """
        Register every ``*.md`` file in a directory, replacing existing content.

        A file that fails to parse or store is logged and recorded.
        """
        result = BulkResult(action="Imported")
        try:
            paths = list_markdown_files(Path(directory))
        except NotADirectoryError as e:
            result.failures.append((str(directory), str(e)))
            return result
        for path in paths:
            result.total += 1
            try:
                entry = load_markdown_file(path)
            except (OSError, ValueError) as e:
                logger.warning("Skipping %s: %s", path.name, e)
                result.failures.append((path.stem, str(e)))
                continue
            outcome = self.register(
                entry.id, entry.content, entry.name, entry.keywords or None, replace=True,
            )
            if not outcome.success:
                logger.warning("Import of %s failed: %s", path.name, outcome.message)
                result.failures.append((entry.id, outcome.message))
                continue
            result.succeeded += 1
        logger.info(result.message)
        return result

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def close(self) -> None:
        """Close the backing store and detach the ops log."""
        if self._kv is not None:
            self._kv.close()
        if self._ops_log_handler is not None:
            logging.getLogger("answerbank").removeHandler(self._ops_log_handler)
            self._ops_log_handler.close()
            self._ops_log_handler = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
