"""
Recommendation links between content items.

Links are directed edges stored on the source item (``recommended_ids``).
There is no foreign-key constraint; consistency comes from checking both
ends on insert and from the cleanup pass that runs on every delete.
"""

import logging
from typing import Optional

from .content_store import ContentStore
from .errors import AnswerBankError, BackingStoreUnavailable, InvalidOperation, NotFound
from .types import CleanupResult, LinkRef, MutationResult

logger = logging.getLogger(__name__)


class LinkGraph:
    """Adds, removes and repairs recommendation links."""

    def __init__(self, store: ContentStore):
        self._store = store

    def add_link(self, target_id: str, recommended_id: str) -> MutationResult:
        """
        Append ``recommended_id`` to the target's links.

        Fails when either id is absent, on a self-link, and when the edge
        already exists.
        """
        try:
            links = self._add(target_id, recommended_id)
        except AnswerBankError as e:
            return MutationResult.from_error(e)
        return MutationResult.ok(
            f'Linked "{target_id}" to "{recommended_id}"', current=links,
        )

    def _add(self, target_id: str, recommended_id: str) -> list[str]:
        if not target_id or not recommended_id:
            raise InvalidOperation("Both a target id and a recommended id are required")
        target = self._store.find(target_id, strict=True)
        if target is None:
            raise NotFound(target_id, role="Target content")
        if not self._store.exists(recommended_id, strict=True):
            raise NotFound(recommended_id, role="Recommended content")
        if target_id == recommended_id:
            raise InvalidOperation(f'"{target_id}" cannot link to itself')
        if recommended_id in target.recommended_ids:
            raise InvalidOperation(f'"{target_id}" already links to "{recommended_id}"')

        target.recommended_ids.append(recommended_id)
        self._store.put(target)
        logger.info("Link added: %s -> %s", target_id, recommended_id)
        return target.recommended_ids

    def remove_link(
        self,
        target_id: str,
        recommended_id: Optional[str] = None,
    ) -> MutationResult:
        """
        Remove one link, or every outgoing link when ``recommended_id`` is None.

        Fails when the target is absent or the named link is not present.
        """
        try:
            removed, remaining = self._remove(target_id, recommended_id)
        except AnswerBankError as e:
            return MutationResult.from_error(e)
        return MutationResult.ok(
            f'Removed {len(removed)} link(s) from "{target_id}"',
            current=remaining,
            removed=removed,
        )

    def _remove(
        self,
        target_id: str,
        recommended_id: Optional[str],
    ) -> tuple[list[str], list[str]]:
        target = self._store.find(target_id, strict=True)
        if target is None:
            raise NotFound(target_id, role="Target content")

        if recommended_id is None:
            if not target.recommended_ids:
                raise InvalidOperation(f'"{target_id}" has no links to remove')
            removed = target.recommended_ids
            target.recommended_ids = []
        else:
            if recommended_id not in target.recommended_ids:
                raise InvalidOperation(f'"{target_id}" does not link to "{recommended_id}"')
            removed = [recommended_id]
            target.recommended_ids = [
                r for r in target.recommended_ids if r != recommended_id
            ]

        self._store.put(target)
        logger.info("Links removed from %s: %s", target_id, ", ".join(removed))
        return removed, target.recommended_ids

    def cleanup_on_delete(self, deleted_id: str) -> CleanupResult:
        """
        Purge ``deleted_id`` from every remaining item's links.

        Best-effort: an item that fails to persist is logged and recorded,
        and the scan carries on with the rest. If the store cannot be read,
        nothing is scanned and ``error`` says why.
        """
        result = CleanupResult()
        try:
            items = self._store.list(strict=True)
        except BackingStoreUnavailable as e:
            logger.warning("Link cleanup for %s skipped: %s", deleted_id, e)
            result.error = str(e)
            return result
        for item in items:
            if deleted_id not in item.recommended_ids:
                continue
            item.recommended_ids = [r for r in item.recommended_ids if r != deleted_id]
            try:
                self._store.put(item)
            except AnswerBankError as e:
                logger.warning("Link cleanup failed for %s (-> %s): %s", item.id, deleted_id, e)
                result.failures.append((item.id, str(e)))
                continue
            result.updated += 1
        if result.updated:
            logger.info("Removed links to %s from %d item(s)", deleted_id, result.updated)
        return result

    def view_links(self, target_id: str) -> Optional[list[LinkRef]]:
        """Outgoing links with display names; None if the target is absent."""
        target = self._store.find(target_id)
        if target is None:
            return None
        refs = []
        for rid in target.recommended_ids:
            linked = self._store.find(rid)
            if linked is None:
                refs.append(LinkRef(id=rid, name=rid, exists=False))
            else:
                refs.append(LinkRef(id=rid, name=linked.name))
        return refs
