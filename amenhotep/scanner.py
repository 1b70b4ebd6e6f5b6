from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Iterable

from amenhotep.errors import ScanError
from amenhotep.models import SourceFile

logger = logging.getLogger(__name__)


def _dir_key(path: Path) -> tuple[int, int]:
    st = path.stat()
    return st.st_dev, st.st_ino


def _iter_source_paths(
    directory: Path,
    suffix: str,
    exclude_dirs: frozenset[str],
    visited: set[tuple[int, int]],
) -> Iterable[Path]:
    try:
        key = _dir_key(directory)
    except OSError as exc:
        raise ScanError(str(directory), f"cannot stat directory: {exc}") from exc
    if key in visited:
        logger.debug("skipping already visited directory %s (symlink cycle)", directory)
        return
    visited.add(key)

    try:
        children = sorted(directory.iterdir(), key=lambda p: p.name)
    except OSError as exc:
        raise ScanError(str(directory), f"cannot list directory: {exc}") from exc

    for child in children:
        if child.is_dir():
            if child.name.startswith(".") or child.name in exclude_dirs:
                logger.debug("not descending into %s", child)
                continue
            yield from _iter_source_paths(child, suffix, exclude_dirs, visited)
        elif child.suffix == suffix:
            if not child.exists():
                logger.warning("skipping dangling symlink %s", child)
                continue
            yield child


def scan_sources(
    root: Path | str,
    suffix: str = ".cairo",
    exclude_dirs: Iterable[str] = ("target",),
) -> list[SourceFile]:
    """Collect contract sources below `root`, ordered by relative path."""
    root_path = Path(root)
    if not root_path.exists():
        raise ScanError(str(root_path), "source directory does not exist")
    if not root_path.is_dir():
        raise ScanError(str(root_path), "source path is not a directory")

    visited: set[tuple[int, int]] = set()
    sources: list[SourceFile] = []
    for path in _iter_source_paths(root_path, suffix, frozenset(exclude_dirs), visited):
        try:
            raw = path.read_bytes()
        except OSError as exc:
            raise ScanError(str(path), f"cannot read source file: {exc}") from exc
        try:
            text = raw.decode("utf-8")
        except UnicodeDecodeError:
            logger.warning("%s is not valid UTF-8; undecodable bytes replaced", path)
            text = raw.decode("utf-8", errors="replace")
        relative = Path(os.path.relpath(path, root_path)).as_posix()
        sources.append(SourceFile(path=path, relative=relative, text=text))

    sources.sort(key=lambda source: source.relative)
    logger.info("scanned %s: %d source file(s)", root_path, len(sources))
    return sources
