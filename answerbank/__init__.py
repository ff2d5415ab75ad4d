"""
Answer Bank

A corpus of pre-authored answers with hybrid keyword + embedding retrieval.
A query selects the best matching item, or the default item when nothing
clears the acceptance threshold.

Quick Start:
    from answerbank import AnswerBank

    bank = AnswerBank()  # uses ~/.answerbank/
    bank.register("billing", "To pay your bill, open the billing page.", keywords=["invoice"])
    answer = bank.ask("how do I pay my invoice?")

CLI Usage:
    answerbank ask "how do I pay my invoice?"
    answerbank content add billing --content "..." -k billing,invoice
    answerbank links add billing refunds
    answerbank reload

Environment Variables:
    ANSWERBANK_STORE_PATH  - Override default store location
    ANSWERBANK_VERBOSE     - Set to 1 for debug logging

Configuration is persisted in answerbank.toml within the store directory.
"""

from .api import AnswerBank
from .errors import AnswerBankError, BackingStoreUnavailable, InvalidOperation, NotFound
from .types import (
    DEFAULT_ID,
    Answer,
    BulkResult,
    ContentItem,
    LinkRef,
    MutationResult,
    RankResult,
    ScoredCandidate,
)

__version__ = "0.1.0"
__all__ = [
    "AnswerBank",
    "Answer",
    "ContentItem",
    "MutationResult",
    "BulkResult",
    "RankResult",
    "ScoredCandidate",
    "LinkRef",
    "DEFAULT_ID",
    "AnswerBankError",
    "NotFound",
    "BackingStoreUnavailable",
    "InvalidOperation",
]
