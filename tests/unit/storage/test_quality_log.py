"""
Unit tests for QualityLog.
"""

import pytest

from reply_core.email_processing.models import AnalysisMetadata
from reply_core.storage.quality_log import QualityLog, QualityStats
from reply_core.storage.state_store import InMemoryStateStore, JsonFileStateStore


class TestQualityLog:
    """Test suite for the reply quality log."""

    @pytest.fixture
    def log(self, clock):
        return QualityLog(clock=clock)

    def test_record_returns_id(self, log, make_analysis, make_reply):
        entry_id = log.record("Hello", make_analysis(), make_reply())

        assert entry_id.startswith("ar_")
        entries = log.list()
        assert len(entries) == 1
        assert entries[0].id == entry_id
        assert entries[0].email_content == "Hello"
        assert entries[0].was_used is False

    def test_ids_are_unique(self, log, make_analysis, make_reply):
        ids = {log.record("Hello", make_analysis(), make_reply()) for _ in range(5)}

        assert len(ids) == 5

    def test_newest_first(self, log, clock, make_analysis, make_reply):
        first = log.record("first", make_analysis(), make_reply())
        clock.advance(seconds=1)
        second = log.record("second", make_analysis(), make_reply())

        assert [entry.id for entry in log.list()] == [second, first]

    def test_capped_in_size(self, clock, make_analysis, make_reply):
        log = QualityLog(clock=clock, config={"max_entries": 3})
        for i in range(5):
            log.record(f"email {i}", make_analysis(), make_reply())

        entries = log.list()
        assert len(entries) == 3
        assert entries[0].email_content == "email 4"

    def test_old_entries_dropped_on_write(self, log, clock, make_analysis, make_reply):
        log.record("old", make_analysis(), make_reply())
        clock.advance(days=31)
        log.record("new", make_analysis(), make_reply())

        assert [entry.email_content for entry in log.list()] == ["new"]

    def test_mark_used(self, log, clock, make_analysis, make_reply):
        entry_id = log.record("Hello", make_analysis(), make_reply())
        clock.advance(seconds=90)

        log.mark_used(entry_id, was_edited=True)

        entry = log.list()[0]
        assert entry.was_used is True
        assert entry.was_edited is True
        assert entry.time_taken_ms == 90_000

    def test_add_feedback(self, log, make_analysis, make_reply):
        entry_id = log.record("Hello", make_analysis(), make_reply())

        log.add_feedback(entry_id, rating=4, comments="Good", suggestion="Shorter")

        feedback = log.list()[0].user_feedback
        assert feedback.rating == 4
        assert feedback.comments == "Good"
        assert feedback.improvement_suggestions == "Shorter"

    def test_unknown_id_is_noop(self, log, make_analysis, make_reply, caplog):
        log.record("Hello", make_analysis(), make_reply())

        log.mark_used("ar_missing", was_edited=False)
        log.add_feedback("ar_missing", rating=5)
        log.delete("ar_missing")

        entry = log.list()[0]
        assert entry.was_used is False
        assert entry.user_feedback is None
        assert "ar_missing" in caplog.text

    def test_entries_needing_attention(self, log, make_analysis, make_reply):
        flagged = make_analysis(metadata=AnalysisMetadata(confidence=0.8, requires_human_review=True))
        log.record("flagged", flagged, make_reply())
        log.record("low confidence", make_analysis(), make_reply(confidence=0.5))
        log.record("fine", make_analysis(), make_reply(confidence=0.95))

        contents = {entry.email_content for entry in log.entries_needing_attention()}

        assert contents == {"flagged", "low confidence"}

    def test_stats(self, log, make_analysis, make_reply):
        flagged = make_analysis(metadata=AnalysisMetadata(confidence=0.3, requires_human_review=True))
        first = log.record("one", flagged, make_reply(confidence=0.6))
        second = log.record("two", make_analysis(), make_reply(confidence=1.0))
        log.mark_used(first, was_edited=True)
        log.mark_used(second, was_edited=False)
        log.add_feedback(first, rating=3)
        log.add_feedback(second, rating=5)

        stats = log.stats()

        assert stats.total_replies == 2
        assert stats.used_replies == 2
        assert stats.edited_replies == 1
        assert stats.average_confidence == pytest.approx(0.8)
        assert stats.human_review_required == 1
        assert stats.average_rating == 4.0

    def test_stats_empty(self, log):
        assert log.stats() == QualityStats()

    def test_delete_and_clear(self, log, make_analysis, make_reply):
        keep = log.record("keep", make_analysis(), make_reply())
        drop = log.record("drop", make_analysis(), make_reply())

        log.delete(drop)
        assert [entry.id for entry in log.list()] == [keep]

        log.clear()
        assert log.list() == []

    def test_instances_share_store(self, clock, make_analysis, make_reply):
        store = InMemoryStateStore()
        entry_id = QualityLog(store=store, clock=clock).record("Hello", make_analysis(), make_reply())

        QualityLog(store=store, clock=clock).mark_used(entry_id, was_edited=False)

        assert QualityLog(store=store, clock=clock).list()[0].was_used is True

    def test_persists_to_file_store(self, tmp_path, clock, make_analysis, make_reply):
        store = JsonFileStateStore(tmp_path)
        QualityLog(store=store, clock=clock).record("Hello", make_analysis(), make_reply())

        reloaded = QualityLog(store=JsonFileStateStore(tmp_path), clock=clock).list()

        assert reloaded[0].email_content == "Hello"
        assert reloaded[0].analysis.sender.email == "alex.smith@example.com"

    def test_malformed_entries_skipped(self, clock):
        store = InMemoryStateStore()
        store.save("quality_log", [{"id": "broken"}])

        assert QualityLog(store=store, clock=clock).list() == []
