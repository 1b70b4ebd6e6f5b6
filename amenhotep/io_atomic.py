from __future__ import annotations

import os
import tempfile
from pathlib import Path


def _current_umask() -> int:
    mask = os.umask(0)
    os.umask(mask)
    return mask


def atomic_write_bytes(path: Path, data: bytes) -> None:
    """Replace `path` with `data` via a temp file in the same directory.

    Readers see either the old file or the complete new one. Symlinked
    targets are refused rather than silently replaced.
    """
    tmp_path: Path | None = None
    existing_mode: int | None = None
    try:
        if path.is_symlink():
            raise OSError(f"refusing to replace symlink {path}")
        if path.exists():
            try:
                existing_mode = path.stat().st_mode & 0o777
            except OSError:
                existing_mode = None
        with tempfile.NamedTemporaryFile("wb", delete=False, dir=path.parent, prefix=f".{path.name}.") as tmp:
            tmp_path = Path(tmp.name)
            tmp.write(data)
            tmp.flush()
            os.fsync(tmp.fileno())
        if existing_mode is None:
            # NamedTemporaryFile creates 0600; new files get the usual umask default
            existing_mode = 0o666 & ~_current_umask()
        os.chmod(tmp_path, existing_mode)
        os.replace(tmp_path, path)
        tmp_path = None
        if hasattr(os, "O_DIRECTORY"):
            dir_fd = os.open(path.parent, os.O_DIRECTORY)
            try:
                os.fsync(dir_fd)
            finally:
                os.close(dir_fd)
    finally:
        if tmp_path is not None and tmp_path.exists():
            try:
                tmp_path.unlink()
            except OSError:
                pass
