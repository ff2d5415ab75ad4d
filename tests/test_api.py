"""
Tests for the AnswerBank facade: registration, keywords, delete, ask,
bulk operations and degraded operation.
"""

import json

import pytest

from answerbank.api import AnswerBank
from answerbank.config import StoreConfig
from answerbank.embeddings import embed
from answerbank.types import DEFAULT_CONTENT, DEFAULT_ID

FAQ = "To pay your bill open the billing page"


# ---------------------------------------------------------------------------
# register
# ---------------------------------------------------------------------------

class TestRegister:

    def test_register_stores_embedding(self, bank):
        result = bank.register("faq", FAQ, name="Billing FAQ", keywords=["billing"])
        assert result.success
        assert result.current == ["billing"]
        item = bank.find("faq")
        assert item.name == "Billing FAQ"
        assert item.embedding == embed(FAQ)

    def test_name_defaults_to_id(self, bank):
        bank.register("faq", FAQ)
        assert bank.find("faq").name == "faq"

    def test_idempotent(self, bank):
        bank.register("faq", FAQ, keywords=["billing"])
        first = bank.find("faq")
        assert bank.register("faq", FAQ).success
        second = bank.find("faq")
        assert second.embedding == first.embedding
        assert second.keywords == ["billing"]

    def test_different_content_rejected(self, bank):
        bank.register("faq", FAQ)
        result = bank.register("faq", "Something else entirely")
        assert not result.success
        assert "replace" in result.message
        assert bank.find("faq").content == FAQ

    def test_replace_keeps_links(self, bank):
        bank.register("faq", FAQ)
        bank.register("other", "Other content")
        bank.add_link("faq", "other")

        assert bank.register("faq", "Updated billing content", replace=True).success
        item = bank.find("faq")
        assert item.content == "Updated billing content"
        assert item.recommended_ids == ["other"]
        assert item.embedding == embed("Updated billing content")

    def test_keywords_deduplicated(self, bank):
        bank.register("faq", FAQ, keywords=["billing", " billing ", "invoice", ""])
        assert bank.find("faq").keywords == ["billing", "invoice"]

    @pytest.mark.parametrize("content", ["", "   "])
    def test_empty_content_rejected(self, bank, content):
        assert not bank.register("faq", content).success

    @pytest.mark.parametrize("id", ["", "bad\x00id", "x" * 300])
    def test_invalid_id_rejected(self, bank, id):
        result = bank.register(id, FAQ)
        assert not result.success
        assert result.error == "InvalidOperation"

    def test_write_failure_reported(self, bank, kv):
        kv.fail_all_puts = True
        result = bank.register("faq", FAQ)
        assert not result.success
        assert "Failed to write" in result.message


# ---------------------------------------------------------------------------
# keywords
# ---------------------------------------------------------------------------

class TestKeywords:

    def test_add(self, bank):
        bank.register("faq", FAQ, keywords=["billing"])
        result = bank.add_keywords("faq", ["invoice", "billing", "payment"])
        assert result.success
        assert result.current == ["billing", "invoice", "payment"]
        assert bank.view_keywords("faq") == ["billing", "invoice", "payment"]

    def test_add_all_present_fails(self, bank):
        bank.register("faq", FAQ, keywords=["billing"])
        assert not bank.add_keywords("faq", ["billing"]).success

    def test_add_empty_fails(self, bank):
        bank.register("faq", FAQ)
        assert not bank.add_keywords("faq", ["", " "]).success

    def test_add_missing_item(self, bank):
        result = bank.add_keywords("nope", ["billing"])
        assert not result.success
        assert result.message == 'Content "nope" not found'

    def test_remove_some(self, bank):
        bank.register("faq", FAQ, keywords=["billing", "invoice"])
        result = bank.remove_keywords("faq", ["invoice", "unknown"])
        assert result.success
        assert result.removed == ["invoice"]
        assert result.current == ["billing"]

    def test_remove_all(self, bank):
        bank.register("faq", FAQ, keywords=["billing", "invoice"])
        result = bank.remove_keywords("faq")
        assert result.removed == ["billing", "invoice"]
        assert bank.view_keywords("faq") == []

    def test_remove_none_present(self, bank):
        bank.register("faq", FAQ, keywords=["billing"])
        assert not bank.remove_keywords("faq", ["invoice"]).success

    def test_remove_all_when_empty(self, bank):
        bank.register("faq", FAQ)
        assert not bank.remove_keywords("faq").success

    def test_view_missing(self, bank):
        assert bank.view_keywords("nope") is None


# ---------------------------------------------------------------------------
# delete
# ---------------------------------------------------------------------------

class TestDelete:

    def test_delete(self, bank):
        bank.register("faq", FAQ)
        result = bank.delete("faq")
        assert result.success
        assert result.removed == ["faq"]
        assert result.message == 'Deleted "faq".'
        assert bank.find("faq") is None

    def test_delete_default_refused(self, bank):
        result = bank.delete(DEFAULT_ID)
        assert not result.success
        assert bank.get(DEFAULT_ID).content == DEFAULT_CONTENT

    def test_delete_missing(self, bank):
        result = bank.delete("nope")
        assert not result.success
        assert result.error == "NotFound"
        assert "not found" in result.message

    def test_delete_default_is_invalid_operation(self, bank):
        assert bank.delete(DEFAULT_ID).error == "InvalidOperation"


# ---------------------------------------------------------------------------
# Failing reads with a working writer
# ---------------------------------------------------------------------------

class TestFailingReads:
    """Writes must never be built from the default-only fallback set."""

    CURATED = "Custom curated fallback"

    @pytest.fixture
    def curated_default(self, kv):
        kv.put(DEFAULT_ID, json.dumps({"content": self.CURATED, "keywords": ["help"]}))

    def _stored_default(self, bank, kv):
        kv.fail_reads = False
        bank.store.invalidate()
        return bank.get(DEFAULT_ID)

    def test_regenerate_leaves_stored_default(self, bank, kv, curated_default):
        kv.fail_reads = True
        result = bank.regenerate_embeddings()
        assert not result.success
        assert result.succeeded == 0
        assert "read failed" in result.message

        default = self._stored_default(bank, kv)
        assert default.content == self.CURATED
        assert default.keywords == ["help"]

    def test_add_keywords_to_default_refused(self, bank, kv, curated_default):
        kv.fail_reads = True
        result = bank.add_keywords(DEFAULT_ID, ["x"])
        assert not result.success
        assert result.error == "BackingStoreUnavailable"

        default = self._stored_default(bank, kv)
        assert default.content == self.CURATED
        assert default.keywords == ["help"]

    def test_remove_keywords_refused(self, bank, kv):
        bank.register("faq", FAQ, keywords=["billing"])
        kv.fail_reads = True
        assert bank.remove_keywords("faq").error == "BackingStoreUnavailable"

    def test_delete_existing_reports_unavailable(self, bank, kv):
        bank.register("y", "Content that should survive")
        kv.fail_reads = True
        result = bank.delete("y")
        assert not result.success
        assert result.error == "BackingStoreUnavailable"
        kv.fail_reads = False
        assert bank.find("y") is not None

    def test_links_report_unavailable(self, bank, kv):
        bank.register("a", "First item content")
        bank.register("b", "Second item content")
        bank.add_link("a", "b")
        kv.fail_reads = True
        assert bank.add_link("b", "a").error == "BackingStoreUnavailable"
        assert bank.remove_link("a", "b").error == "BackingStoreUnavailable"
        kv.fail_reads = False
        assert bank.find("a").recommended_ids == ["b"]

    def test_register_keeps_existing_links(self, bank, kv):
        bank.register("a", "First item content")
        bank.register("b", "Second item content")
        bank.add_link("a", "b")
        kv.fail_reads = True
        result = bank.register("a", "Rewritten content", replace=True)
        assert result.error == "BackingStoreUnavailable"
        kv.fail_reads = False
        item = bank.find("a")
        assert item.content == "First item content"
        assert item.recommended_ids == ["b"]

    def test_reads_still_degrade_to_default(self, bank, kv):
        bank.register("faq", FAQ)
        kv.fail_reads = True
        assert bank.find("faq") is None
        assert bank.ask(FAQ).id == DEFAULT_ID


# ---------------------------------------------------------------------------
# ask
# ---------------------------------------------------------------------------

class TestAsk:

    def test_match_with_related(self, bank):
        bank.register("faq", FAQ, name="Billing FAQ", keywords=["billing"])
        bank.register("refunds", "Refunds are processed within five days", name="Refunds")
        bank.add_link("faq", "refunds")

        answer = bank.ask(FAQ)
        assert answer.matched
        assert answer.id == "faq"
        assert answer.content == FAQ
        assert [(r.id, r.name) for r in answer.related] == [("refunds", "Refunds")]

    def test_no_match_resolves_to_default(self, bank):
        answer = bank.ask("hi")
        assert not answer.matched
        assert answer.id == DEFAULT_ID
        assert answer.content == DEFAULT_CONTENT
        assert answer.score is None

    def test_dangling_related_skipped(self, kv, store_config):
        kv.put("faq", json.dumps({
            "content": FAQ,
            "embedding": embed(FAQ),
            "recommendedIds": ["ghost"],
        }))
        with AnswerBank(config=store_config, kv_store=kv, ops_log=False) as bank:
            answer = bank.ask(FAQ)
        assert answer.id == "faq"
        assert answer.related == []

    def test_to_dict(self, bank):
        data = bank.ask("hi").to_dict()
        assert data["id"] == DEFAULT_ID
        assert data["matched"] is False
        assert data["related"] == []

    def test_custom_default_content(self, kv, tmp_path):
        config = StoreConfig(path=tmp_path, default_content="Please contact support.")
        with AnswerBank(config=config, kv_store=kv, ops_log=False) as bank:
            assert bank.ask("something unanswerable here").content == "Please contact support."


# ---------------------------------------------------------------------------
# Bulk operations
# ---------------------------------------------------------------------------

class TestRegenerateEmbeddings:

    def test_regenerates_all(self, bank, kv):
        kv.put("raw", "Plain text stored without a record")
        result = bank.regenerate_embeddings()
        assert result.success
        assert result.succeeded == result.total
        assert bank.find("raw").embedding == embed("Plain text stored without a record")

    def test_partial_failure(self, bank, kv):
        for id in ("a", "b", "c"):
            bank.register(id, f"Content for item {id}")
        kv.fail_puts_for = {"b"}

        result = bank.regenerate_embeddings()
        # a, b, c plus the built-in default
        assert result.total == 4
        assert result.succeeded == 3
        assert [fid for fid, _ in result.failures] == ["b"]
        assert result.message.startswith("Regenerated embeddings for 3/4 items.")
        assert "b" in result.message

    def test_unavailable_backend(self, tmp_path):
        config = StoreConfig(path=tmp_path, backend="no-such-backend")
        with AnswerBank(config=config, ops_log=False) as bank:
            result = bank.regenerate_embeddings()
        assert not result.success
        assert result.total == 0
        assert "unavailable" in result.message


class TestImportMarkdown:

    def test_import(self, bank, tmp_path):
        docs = tmp_path / "docs"
        docs.mkdir()
        (docs / "billing.md").write_text(
            "---\nname: Billing FAQ\nkeywords: [billing, invoice]\n---\n" + FAQ + "\n"
        )
        (docs / "setup.md").write_text("Install the app and create an account\n")
        (docs / "empty.md").write_text("---\nname: Empty\n---\n")

        result = bank.import_markdown(docs)
        assert result.total == 3
        assert result.succeeded == 2
        assert [fid for fid, _ in result.failures] == ["empty"]

        billing = bank.find("billing")
        assert billing.name == "Billing FAQ"
        assert billing.keywords == ["billing", "invoice"]
        assert billing.content == FAQ
        assert bank.find("setup").name == "setup"

    def test_reimport_replaces(self, bank, tmp_path):
        (tmp_path / "faq.md").write_text("First version of the answer")
        bank.import_markdown(tmp_path)
        (tmp_path / "faq.md").write_text("Second version of the answer")
        assert bank.import_markdown(tmp_path).success
        assert bank.find("faq").content == "Second version of the answer"

    def test_missing_directory(self, bank, tmp_path):
        result = bank.import_markdown(tmp_path / "missing")
        assert not result.success
        assert result.total == 0


# ---------------------------------------------------------------------------
# Degraded operation and persistence
# ---------------------------------------------------------------------------

class TestUnavailableBackend:

    @pytest.fixture
    def offline(self, tmp_path):
        config = StoreConfig(path=tmp_path, backend="no-such-backend")
        with AnswerBank(config=config, ops_log=False) as bank:
            yield bank

    def test_reads_default_only(self, offline):
        assert not offline.available
        assert [i.id for i in offline.list_items()] == [DEFAULT_ID]
        answer = offline.ask("How do I pay my bill?")
        assert answer.id == DEFAULT_ID

    def test_writes_fail(self, offline):
        result = offline.register("faq", FAQ)
        assert not result.success
        assert "unavailable" in result.message
        assert not offline.add_link("faq", DEFAULT_ID).success
        assert not offline.delete("faq").success


class TestPersistence:

    def test_sqlite_round_trip(self, store_path):
        with AnswerBank(store_path) as bank:
            bank.register("faq", FAQ, keywords=["billing"])
            bank.register("other", "Other content")
            bank.add_link("faq", "other")

        assert (store_path / "answerbank.toml").exists()
        assert (store_path / "content.db").exists()

        with AnswerBank(store_path) as bank:
            item = bank.find("faq")
            assert item.keywords == ["billing"]
            assert item.recommended_ids == ["other"]
            assert bank.ask(FAQ).id == "faq"

    def test_ops_log_written(self, store_path):
        with AnswerBank(store_path) as bank:
            bank.register("faq", FAQ)
        assert "Stored faq" in (store_path / "answerbank-ops.log").read_text()

    def test_memory_backend_from_config(self, tmp_path):
        config = StoreConfig(path=tmp_path, backend="memory")
        with AnswerBank(config=config, ops_log=False) as bank:
            assert bank.available
            assert bank.register("faq", FAQ).success
