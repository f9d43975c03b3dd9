from unittest.mock import patch

import pytest

from leader_reporter.shared.errors import MarkerIOError
from leader_reporter.shared.marker import MarkerStore, RunLock


class TestMarkerStore:
    def test_missing_file_reads_as_zero(self, marker_path):
        assert MarkerStore(marker_path).read() == 0

    def test_reads_trimmed_integer(self, marker_path):
        marker_path.write_text(" 450\n")
        assert MarkerStore(marker_path).read() == 450

    @pytest.mark.parametrize("content", [b"", b"abc", b"450.5", b"-3", b"\xff\xfe45"])
    def test_bad_content_is_an_error(self, marker_path, content):
        marker_path.write_bytes(content)
        with pytest.raises(MarkerIOError):
            MarkerStore(marker_path).read()

    def test_unreadable_path_is_an_error(self, tmp_path):
        # a directory where the file should be
        path = tmp_path / "last_epoch.txt"
        path.mkdir()
        with pytest.raises(MarkerIOError):
            MarkerStore(path).read()

    def test_write_creates_file(self, marker_path):
        MarkerStore(marker_path).write(450)
        assert marker_path.read_text() == "450"

    def test_write_overwrites_wholesale(self, marker_path):
        marker_path.write_text("123456789")
        store = MarkerStore(marker_path)
        store.write(451)
        assert marker_path.read_text() == "451"
        assert store.read() == 451

    def test_write_leaves_no_temp_files(self, marker_path):
        MarkerStore(marker_path).write(7)
        assert [p.name for p in marker_path.parent.iterdir()] == ["last_epoch.txt"]

    def test_failed_rename_keeps_old_value(self, marker_path):
        marker_path.write_text("450")
        store = MarkerStore(marker_path)
        with patch("leader_reporter.shared.marker.os.replace", side_effect=OSError("disk full")):
            with pytest.raises(MarkerIOError):
                store.write(451)
        assert marker_path.read_text() == "450"
        assert [p.name for p in marker_path.parent.iterdir()] == ["last_epoch.txt"]

    def test_negative_epoch_rejected(self, marker_path):
        with pytest.raises(ValueError):
            MarkerStore(marker_path).write(-1)


class TestRunLock:
    def test_second_holder_is_refused(self, tmp_path):
        path = tmp_path / "last_epoch.txt.lock"
        first, second = RunLock(path), RunLock(path)
        assert first.acquire()
        try:
            assert not second.acquire()
            assert not second.held
        finally:
            first.release()

    def test_released_lock_can_be_taken_again(self, tmp_path):
        path = tmp_path / "last_epoch.txt.lock"
        with RunLock(path) as lock:
            assert lock.held
        assert not lock.held
        again = RunLock(path)
        assert again.acquire()
        again.release()

    def test_release_without_acquire_is_noop(self, tmp_path):
        RunLock(tmp_path / "x.lock").release()

    def test_busy_lock_refuses_with_block(self, tmp_path):
        path = tmp_path / "last_epoch.txt.lock"
        entered = False
        with RunLock(path):
            with pytest.raises(MarkerIOError, match="held by another run"):
                with RunLock(path):
                    entered = True
        assert not entered
