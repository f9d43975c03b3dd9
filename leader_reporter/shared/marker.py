from __future__ import annotations

import fcntl
import os
import tempfile
from pathlib import Path

from leader_reporter.shared.app_logging import structlog
from leader_reporter.shared.errors import MarkerIOError

logger = structlog.get_logger(__name__)


class MarkerStore:
    """
    Last epoch whose schedule was reported, kept as a bare decimal in a text file.
    A missing file means nothing has been reported yet.
    """

    def __init__(self, path: str | Path):
        self.path = Path(path)

    def read(self) -> int:
        try:
            raw = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            logger.info("Marker not found, assuming first run", path=str(self.path))
            return 0
        except (OSError, UnicodeDecodeError) as e:
            raise MarkerIOError(f"Cannot read marker {self.path}: {e}") from e

        try:
            epoch = int(raw.strip())
        except ValueError as e:
            raise MarkerIOError(f"Marker {self.path} does not hold an epoch number: {raw.strip()!r}") from e
        if epoch < 0:
            raise MarkerIOError(f"Marker {self.path} holds a negative epoch: {epoch}")
        return epoch

    def write(self, epoch: int) -> None:
        """
        Replace the marker content with `epoch`.

        The value goes to a temp file in the same directory first and is then
        renamed over the marker, so a killed process leaves either the old or
        the new value on disk, never a truncated one.
        """
        if epoch < 0:
            raise ValueError(f"epoch must be non-negative, got {epoch}")

        tmp_name = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp")
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(str(epoch))
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, self.path)
            tmp_name = None
        except OSError as e:
            raise MarkerIOError(f"Cannot write marker {self.path}: {e}") from e
        finally:
            if tmp_name is not None:
                try:
                    os.unlink(tmp_name)
                except FileNotFoundError:
                    pass

        logger.info("Updated last processed epoch", epoch=epoch, path=str(self.path))


class RunLock:
    """
    Advisory lock held for a whole run so overlapping cron invocations do not
    race on the marker's read-then-write.

    Relies on fcntl.flock, so it is POSIX only and only binds processes that
    also take the lock.
    """

    def __init__(self, path: str | Path):
        self.path = Path(path)
        self._fd: int | None = None

    @property
    def held(self) -> bool:
        return self._fd is not None

    def acquire(self) -> bool:
        """Returns False when another process already holds the lock."""
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd = os.open(self.path, os.O_RDWR | os.O_CREAT, 0o644)
        except OSError as e:
            raise MarkerIOError(f"Cannot open lock file {self.path}: {e}") from e

        try:
            fcntl.flock(fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
        except BlockingIOError:
            os.close(fd)
            return False
        except OSError as e:
            os.close(fd)
            raise MarkerIOError(f"Cannot lock {self.path}: {e}") from e

        self._fd = fd
        return True

    def release(self) -> None:
        if self._fd is None:
            return
        try:
            fcntl.flock(self._fd, fcntl.LOCK_UN)
        finally:
            os.close(self._fd)
            self._fd = None

    def __enter__(self) -> RunLock:
        if not self.acquire():
            raise MarkerIOError(f"Lock {self.path} is held by another run")
        return self

    def __exit__(self, *exc) -> None:
        self.release()
