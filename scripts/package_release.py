from __future__ import annotations

import argparse
import tomllib
import zipfile
from pathlib import Path

from amenhotep.core import IndexerScaffolder

ROOT = Path(__file__).resolve().parents[1]

INCLUDE_PATHS = [
    "amenhotep",
    "examples/contracts",
    "app.py",
    "DESIGN.md",
    "pyproject.toml",
]

EXCLUDE_PARTS = {"__pycache__", ".pytest_cache", ".mypy_cache", ".git", ".venv", "venv", "indexer"}
EXCLUDE_SUFFIXES = {".pyc", ".pyo"}


def load_project_version(root: Path = ROOT) -> str:
    with (root / "pyproject.toml").open("rb") as fh:
        data = tomllib.load(fh)

    version = data.get("project", {}).get("version")
    if not isinstance(version, str) or not version.strip():
        raise RuntimeError("Unable to read [project].version from pyproject.toml")
    return version.strip()


def _should_include(path: Path) -> bool:
    if any(part in EXCLUDE_PARTS for part in path.parts):
        return False
    return path.suffix not in EXCLUDE_SUFFIXES


def collect_files(root: Path = ROOT) -> list[Path]:
    files: list[Path] = []
    for rel in INCLUDE_PATHS:
        source = root / rel
        if source.is_dir():
            files.extend(
                f.relative_to(root)
                for f in source.rglob("*")
                if f.is_file() and _should_include(f.relative_to(root))
            )
        elif source.exists() and _should_include(source.relative_to(root)):
            files.append(source.relative_to(root))
    return sorted(files, key=lambda p: p.as_posix())


def check_examples(root: Path = ROOT) -> int:
    """Plan the bundled example contracts; a parse error aborts the release."""
    plan = IndexerScaffolder().build_generation_plan(root / "examples" / "contracts", output_root=root / "indexer")
    return len(plan.entries)


def build_release(root: Path = ROOT, dist: Path | None = None) -> Path:
    dist = dist or root / "dist"
    dist.mkdir(parents=True, exist_ok=True)
    out = dist / f"amenhotep-{load_project_version(root)}.zip"

    with zipfile.ZipFile(out, "w", compression=zipfile.ZIP_DEFLATED) as zf:
        for rel in collect_files(root):
            zf.write(root / rel, rel.as_posix())
    return out


def main() -> None:
    parser = argparse.ArgumentParser(description="Build the amenhotep release zip")
    parser.add_argument("--dist", help="Output directory (default: ./dist)")
    parser.add_argument("--skip-check", action="store_true", help="Do not plan the example contracts first")
    args = parser.parse_args()

    if not args.skip_check:
        print(f"Example contracts plan {check_examples()} file(s)")
    out = build_release(dist=Path(args.dist) if args.dist else None)
    print(f"Release package created: {out}")


if __name__ == "__main__":
    main()
