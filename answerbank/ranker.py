"""
Hybrid ranking: pick the content item that best answers a query.

Two signals per item:
- keyword score: query tokens covered by curated keywords and body text
- embedding score: cosine similarity of pseudo-embeddings

Aggregate = embedding_weight * embedding_score + keyword_weight * keyword_score.
When no item carries an embedding the semantic term cannot contribute, so
the ranker falls back to the keyword score alone with its own threshold.

The default item is never a candidate; it is what a no-match resolves to.
"""

import logging
from typing import Optional

from .config import RankingConfig
from .content_store import ContentStore
from .embeddings import HashEmbeddingProvider, cosine_similarity
from .lexical import keyword_match_score, normalize_text
from .types import ContentItem, RankResult, ScoredCandidate

logger = logging.getLogger(__name__)


class HybridRanker:
    """Single-shot selection over the store's current snapshot."""

    def __init__(
        self,
        store: ContentStore,
        embedder: Optional[HashEmbeddingProvider] = None,
        config: Optional[RankingConfig] = None,
    ):
        self._store = store
        self._embedder = embedder or HashEmbeddingProvider()
        self._config = config or RankingConfig()

    @property
    def config(self) -> RankingConfig:
        return self._config

    def _similarity(self, query_embedding: list[float], item: ContentItem) -> Optional[float]:
        if not item.has_embedding:
            return None
        try:
            return cosine_similarity(query_embedding, item.embedding)
        except ValueError as e:
            logger.debug("Skipping embedding of %s: %s", item.id, e)
            return None

    def _score(self, query: str) -> tuple[list[ScoredCandidate], bool, dict[str, ContentItem]]:
        """Score every candidate. Returns (sorted candidates, hybrid mode, items by id)."""
        cfg = self._config
        if len(normalize_text(query)) < cfg.min_query_length:
            return [], False, {}

        items = [item for item in self._store.list() if not item.is_default]
        by_id = {item.id: item for item in items}
        hybrid = any(item.has_embedding for item in items)
        query_embedding = self._embedder.embed(query) if hybrid else None

        candidates = []
        for item in items:
            kw = keyword_match_score(
                query, item.content, item.keywords,
                content_weight=cfg.content_match_weight,
                manual_weight=cfg.manual_match_weight,
            )
            if not (kw > cfg.keyword_floor or item.has_embedding):
                continue

            if hybrid:
                similarity = self._similarity(query_embedding, item)
                embedding_score = (
                    similarity
                    if similarity is not None and similarity >= cfg.embedding_floor
                    else 0.0
                )
                score = cfg.embedding_weight * embedding_score + cfg.keyword_weight * kw
            else:
                similarity = None
                embedding_score = 0.0
                score = kw

            candidates.append(ScoredCandidate(
                id=item.id,
                keyword_score=kw,
                similarity=similarity,
                embedding_score=embedding_score,
                score=score,
            ))

        # Stable: equal scores keep storage order
        candidates.sort(key=lambda c: c.score, reverse=True)
        return candidates, hybrid, by_id

    def rank(self, query: str) -> list[ScoredCandidate]:
        """All candidates for a query, best first. Empty for too-short queries."""
        candidates, _, _ = self._score(query)
        return candidates

    def best_match(self, query: str) -> RankResult:
        """
        The top candidate if it clears the acceptance threshold.

        Returns RankResult.no_match() otherwise; callers resolve that to the
        default item.
        """
        candidates, hybrid, by_id = self._score(query)
        if not candidates:
            return RankResult.no_match()

        top = candidates[0]
        threshold = (
            self._config.acceptance_threshold if hybrid
            else self._config.keyword_only_threshold
        )
        if top.score <= threshold:
            logger.debug("No match for %r (best %s at %.3f)", query, top.id, top.score)
            return RankResult.no_match(score=top.score)

        logger.debug("Matched %r -> %s (%.3f)", query, top.id, top.score)
        return RankResult(id=top.id, content=by_id[top.id].content, score=top.score)
