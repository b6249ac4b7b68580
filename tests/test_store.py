"""
Channel storage (sessions/store.py)

Tests MemoryBackend and FileBackend.
"""

import pytest

from samlsession.sessions import ChannelStoreUnavailableFault, FileBackend, MemoryBackend


class TestMemoryBackend:

    def test_read_unknown(self):
        assert MemoryBackend().read("nope") == {}

    def test_read_returns_copy(self):
        backend = MemoryBackend()
        backend.write("s", {"a": "1"})
        bag = backend.read("s")
        bag["a"] = "changed"
        assert backend.read("s") == {"a": "1"}

    def test_delete_and_exists(self):
        backend = MemoryBackend()
        backend.write("s", {})
        assert backend.exists("s")
        backend.delete("s")
        assert not backend.exists("s")
        assert len(backend) == 0


class TestFileBackend:

    def test_round_trip(self, tmp_path):
        backend = FileBackend(tmp_path / "sessions")
        backend.write("s1", {"k": "v"})
        assert backend.read("s1") == {"k": "v"}
        assert (tmp_path / "sessions" / "sess_s1.json").exists()
        assert backend.get_stats()["total_sessions"] == 1

    def test_corrupt_file_reads_empty(self, tmp_path):
        (tmp_path / "sess_bad.json").write_text("{not json")
        assert FileBackend(tmp_path).read("bad") == {}

    def test_non_mapping_reads_empty(self, tmp_path):
        (tmp_path / "sess_list.json").write_text("[1, 2]")
        assert FileBackend(tmp_path).read("list") == {}

    def test_set_save_path(self, tmp_path):
        backend = FileBackend(tmp_path / "a")
        backend.write("s", {"where": "a"})
        backend.set_save_path(str(tmp_path / "b"))
        assert backend.read("s") == {}
        assert not backend.exists("s")

    def test_delete(self, tmp_path):
        backend = FileBackend(tmp_path)
        backend.write("s", {})
        backend.delete("s")
        backend.delete("s")
        assert not backend.exists("s")

    def test_unwritable_location(self, tmp_path):
        blocker = tmp_path / "file"
        blocker.write_text("")
        backend = FileBackend(blocker / "sub")
        with pytest.raises(ChannelStoreUnavailableFault) as exc:
            backend.write("s", {})
        assert exc.value.retryable is True
