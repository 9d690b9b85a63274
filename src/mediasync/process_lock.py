"""Single-run locking for scheduled syncs."""

import fcntl
import os
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from mediasync.config import MediaSyncConfig


class RunLock:
    """Prevents two sync runs from working on the catalog at once."""

    def __init__(self, config: "MediaSyncConfig") -> None:
        self.lock_file = config.log_dir / "mediasync.lock"
        self.lock_fd: int | None = None

    def acquire(self) -> bool:
        """Try to acquire exclusive lock. Returns True if successful."""
        try:
            self.lock_file.parent.mkdir(parents=True, exist_ok=True)
            self.lock_fd = os.open(str(self.lock_file), os.O_CREAT | os.O_WRONLY)
            fcntl.flock(self.lock_fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
            os.ftruncate(self.lock_fd, 0)
            os.write(self.lock_fd, str(os.getpid()).encode())
            os.fsync(self.lock_fd)
            return True
        except OSError:
            if self.lock_fd is not None:
                os.close(self.lock_fd)
                self.lock_fd = None
            return False

    def release(self) -> None:
        if self.lock_fd is not None:
            try:
                fcntl.flock(self.lock_fd, fcntl.LOCK_UN)
                os.close(self.lock_fd)
            finally:
                self.lock_fd = None

    def holder_pid(self) -> int | None:
        """PID written by the current lock holder, if readable."""
        try:
            return int(self.lock_file.read_text().strip())
        except (OSError, ValueError):
            return None

    def __enter__(self) -> "RunLock":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.release()
