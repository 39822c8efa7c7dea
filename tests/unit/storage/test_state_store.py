"""
Unit tests for the key-value state stores.
"""

import logging

import pytest
from cryptography.fernet import Fernet

from reply_core.exceptions import StateStoreError
from reply_core.storage.state_store import (
    EncryptedFileStateStore,
    InMemoryStateStore,
    JsonFileStateStore,
    StateStore,
)

SAMPLE_STATE = {"error_counts": {"analyzeEmail:timeout": {"count": 2}}, "last_error": None}


class BrokenStore(StateStore):
    """Store whose backend always fails."""

    def _read(self, key):
        raise StateStoreError("disk on fire")

    def _write(self, key, value):
        raise StateStoreError("disk on fire")

    def _remove(self, key):
        raise StateStoreError("disk on fire")


class TestInMemoryStateStore:

    def test_missing_key_returns_default(self):
        store = InMemoryStateStore()

        assert store.load("quality_log", []) == []
        assert store.load("quality_log") is None

    def test_save_and_load(self):
        store = InMemoryStateStore()

        assert store.save("error_tracking", SAMPLE_STATE) is True
        assert store.load("error_tracking") == SAMPLE_STATE

    def test_stored_values_are_copies(self):
        store = InMemoryStateStore()
        value = {"items": [1, 2]}
        store.save("key", value)

        value["items"].append(3)
        loaded = store.load("key")
        loaded["items"].append(4)

        assert store.load("key") == {"items": [1, 2]}

    def test_delete(self):
        store = InMemoryStateStore()
        store.save("key", 1)

        assert store.delete("key") is True
        assert store.load("key") is None


class TestJsonFileStateStore:

    @pytest.fixture
    def store(self, tmp_path):
        return JsonFileStateStore(tmp_path / "state")

    def test_creates_directory(self, tmp_path):
        JsonFileStateStore(tmp_path / "nested" / "state")

        assert (tmp_path / "nested" / "state").is_dir()

    def test_round_trip(self, store):
        store.save("error_tracking", SAMPLE_STATE)

        assert store.load("error_tracking") == SAMPLE_STATE
        assert (store.storage_path / "error_tracking.json").exists()

    def test_no_temp_file_left(self, store):
        store.save("error_tracking", SAMPLE_STATE)

        assert list(store.storage_path.glob("*.tmp")) == []

    def test_state_survives_new_instance(self, store):
        store.save("quality_log", [{"id": "ar_1"}])

        assert JsonFileStateStore(store.storage_path).load("quality_log") == [{"id": "ar_1"}]

    def test_invalid_key_rejected(self, store):
        assert store.save("../escape", {}) is False
        assert store.load("../escape", "default") == "default"

    def test_corrupt_file_loads_default(self, store):
        (store.storage_path / "quality_log.json").write_text("{not json", encoding="utf-8")

        assert store.load("quality_log", []) == []

    def test_delete(self, store):
        store.save("key", 1)

        assert store.delete("key") is True
        assert not (store.storage_path / "key.json").exists()
        assert store.delete("key") is True


class TestEncryptedFileStateStore:

    @pytest.fixture
    def key(self):
        return Fernet.generate_key()

    def test_data_encrypted_at_rest(self, tmp_path, key):
        store = EncryptedFileStateStore(tmp_path, encryption_key=key)
        store.save("quality_log", [{"email_content": "confidential merger notes"}])

        raw = (tmp_path / "quality_log.bin").read_bytes()

        assert b"confidential" not in raw
        assert store.load("quality_log") == [{"email_content": "confidential merger notes"}]

    def test_same_key_reads_across_instances(self, tmp_path, key):
        EncryptedFileStateStore(tmp_path, encryption_key=key).save("state", {"a": 1})

        reopened = EncryptedFileStateStore(tmp_path, encryption_key=key.decode("utf-8"))

        assert reopened.load("state") == {"a": 1}

    def test_wrong_key_loads_default(self, tmp_path, key):
        EncryptedFileStateStore(tmp_path, encryption_key=key).save("state", {"a": 1})

        other = EncryptedFileStateStore(tmp_path, encryption_key=Fernet.generate_key())

        assert other.load("state", {}) == {}

    def test_generated_key_warns(self, tmp_path, caplog):
        with caplog.at_level(logging.WARNING):
            store = EncryptedFileStateStore(tmp_path)

        assert "dynamically generated" in caplog.text
        assert store.save("state", [1]) is True
        assert store.load("state") == [1]


class TestFailingBackend:

    def test_failures_are_absorbed(self, caplog):
        store = BrokenStore()

        with caplog.at_level(logging.ERROR):
            assert store.save("key", 1) is False
            assert store.load("key", "fallback") == "fallback"
            assert store.delete("key") is False

        assert "disk on fire" in caplog.text
