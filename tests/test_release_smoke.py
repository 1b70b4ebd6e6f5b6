from __future__ import annotations

import importlib.util
import json
import subprocess
import sys
import zipfile
from pathlib import Path

from conftest import VAULT_SOURCE

ROOT = Path(__file__).resolve().parents[1]


def _cli(*args: str) -> subprocess.CompletedProcess:
    return subprocess.run(
        [sys.executable, "-m", "amenhotep.cli", *args],
        capture_output=True,
        text=True,
        cwd=ROOT,
    )


def test_cli_dry_run_smoke(vault_dir: Path, tmp_path: Path) -> None:
    proc = _cli("dry-run", str(vault_dir), "--output", str(tmp_path / "out"))

    assert proc.returncode == 0
    assert proc.stdout.splitlines() == [
        "CREATE vault/checkpoint.json",
        "CREATE vault/handlers/deposited.ts",
        "CREATE vault/manifest.json",
    ]
    assert not (tmp_path / "out").exists()


def test_cli_generate_then_dry_run_detects_edits(vault_dir: Path, tmp_path: Path) -> None:
    out = tmp_path / "out"
    report_path = tmp_path / "plan.json"
    first = _cli("generate", str(vault_dir), "--output", str(out), "--report", str(report_path))
    assert first.returncode == 0
    assert "[report] written:" in first.stderr
    assert json.loads(report_path.read_text(encoding="utf-8"))["execution"]["mode"] == "apply"

    (out / "vault" / "manifest.json").write_text("{}\n", encoding="utf-8")
    second = _cli("dry-run", str(vault_dir), "--output", str(out))

    assert second.returncode == 3
    assert "OVERWRITE_DIFFERENT vault/manifest.json" in second.stdout


def test_cli_reports_every_parse_error(tmp_path: Path) -> None:
    (tmp_path / "a.cairo").write_text("#[contract]\nmod A {\n", encoding="utf-8")
    (tmp_path / "b.cairo").write_text("#[contract]\nmod B {\n", encoding="utf-8")
    (tmp_path / "ok.cairo").write_text(VAULT_SOURCE, encoding="utf-8")

    proc = _cli("dry-run", str(tmp_path), "--workers", "2")

    assert proc.returncode == 1
    errors = [line for line in proc.stderr.splitlines() if line.startswith("ParseError:")]
    assert errors[0].startswith("ParseError: a.cairo:2:")
    assert errors[1].startswith("ParseError: b.cairo:2:")


def test_cli_missing_source_dir(tmp_path: Path) -> None:
    proc = _cli("generate", str(tmp_path / "missing"))

    assert proc.returncode == 1
    assert proc.stderr.startswith("ScanError:")


def test_cli_rejects_bad_config(vault_dir: Path, tmp_path: Path) -> None:
    config = tmp_path / "amenhotep.json"
    config.write_text('{"max_workers": "many"}', encoding="utf-8")

    proc = _cli("dry-run", str(vault_dir), "--config", str(config))

    assert proc.returncode == 1
    assert "invalid config" in proc.stderr


def test_release_package_contains_sources(tmp_path: Path) -> None:
    proc = subprocess.run(
        [sys.executable, "-m", "scripts.package_release", "--dist", str(tmp_path)],
        check=True,
        capture_output=True,
        text=True,
        cwd=ROOT,
    )
    assert "Release package created" in proc.stdout

    (archive,) = tmp_path.glob("amenhotep-*.zip")
    with zipfile.ZipFile(archive) as zf:
        names = zf.namelist()
    assert "amenhotep/cli.py" in names
    assert "examples/contracts/vault.cairo" in names
    assert not any(name.endswith(".pyc") for name in names)


def test_streamlit_app_startup_import_smoke() -> None:
    if importlib.util.find_spec("streamlit") is None:
        return
    proc = subprocess.run(
        [sys.executable, "-m", "py_compile", "app.py"],
        check=True,
        capture_output=True,
        text=True,
        cwd=ROOT,
    )
    assert proc.returncode == 0
