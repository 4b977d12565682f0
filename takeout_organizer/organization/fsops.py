"""
Filesystem primitives shared by hashing, placement and healing.

Every mutating call goes through retry_io: transient failures (locks held
by antivirus scanners, flaky network shares) get a bounded exponential
backoff before the error is allowed to surface.
"""
import logging
import shutil
import time
from pathlib import Path
from typing import Callable, Optional, TypeVar

from .. import config

T = TypeVar("T")


def retry_io(func: Callable[..., T], *args, what: str = "I/O",
             attempts: Optional[int] = None, base_delay: Optional[float] = None) -> T:
    """
    Calls func(*args), retrying OSError up to `attempts` times.
    A missing file is permanent and is raised immediately.
    """
    attempts = max(1, attempts if attempts is not None else config.RETRY_ATTEMPTS)
    base_delay = base_delay if base_delay is not None else config.RETRY_BASE_DELAY

    last_err = None
    for attempt in range(attempts):
        try:
            return func(*args)
        except FileNotFoundError:
            raise
        except OSError as e:
            last_err = e
            if attempt + 1 < attempts:
                delay = base_delay * (2 ** attempt)
                logging.debug(f"{what} failed ({e}); retry {attempt + 1}/{attempts - 1} in {delay:.2f}s")
                time.sleep(delay)
    raise last_err


def move_file(src: Path, dest: Path):
    dest.parent.mkdir(parents=True, exist_ok=True)
    retry_io(shutil.move, str(src), str(dest), what=f"move {src.name}")


def copy_file(src: Path, dest: Path):
    dest.parent.mkdir(parents=True, exist_ok=True)
    retry_io(shutil.copy2, str(src), str(dest), what=f"copy {src.name}")


def append_line(path: Path, line: str):
    """Appends one newline-terminated line to a text log."""
    def _append():
        with path.open("a", encoding="utf-8", newline="\n") as f:
            f.write(line + "\n")
    retry_io(_append, what=f"append {path.name}")
