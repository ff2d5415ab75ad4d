"""
Shared pytest fixtures for answerbank tests.

Stores run on an in-memory key-value collaborator unless a test needs the
SQLite file; every store directory lives under tmp_path.
"""

from pathlib import Path
from typing import Optional

import pytest

from answerbank.api import AnswerBank
from answerbank.config import StoreConfig
from answerbank.content_store import ContentStore
from answerbank.embeddings import HashEmbeddingProvider
from answerbank.kv_store import MemoryKVStore


class FailingKVStore(MemoryKVStore):
    """
    Memory store whose writes (or reads) can be made to fail on demand.

    ``fail_puts_for`` holds keys whose put raises; ``fail_reads`` makes
    list_keys raise.
    """

    def __init__(self, initial: Optional[dict[str, str]] = None):
        super().__init__(initial)
        self.fail_puts_for: set[str] = set()
        self.fail_all_puts = False
        self.fail_reads = False
        self.list_calls = 0

    def put(self, key: str, value: str) -> None:
        if self.fail_all_puts or key in self.fail_puts_for:
            raise RuntimeError(f"simulated write failure for {key}")
        super().put(key, value)

    def list_keys(self) -> list[str]:
        self.list_calls += 1
        if self.fail_reads:
            raise RuntimeError("simulated read failure")
        return super().list_keys()


@pytest.fixture
def embedder():
    return HashEmbeddingProvider()


@pytest.fixture
def kv():
    return FailingKVStore()


@pytest.fixture
def store(kv, embedder):
    return ContentStore(kv, dimension=embedder.dimension)


@pytest.fixture
def store_config(tmp_path) -> StoreConfig:
    return StoreConfig(path=tmp_path / "store")


@pytest.fixture
def bank(store_config, kv):
    """AnswerBank over the in-memory collaborator, no ops log."""
    with AnswerBank(config=store_config, kv_store=kv, ops_log=False) as b:
        yield b


@pytest.fixture
def sqlite_bank(tmp_path):
    """AnswerBank on a real store directory (answerbank.toml + content.db)."""
    with AnswerBank(tmp_path / "store") as b:
        yield b


@pytest.fixture
def store_path(tmp_path) -> Path:
    return tmp_path / "store"
