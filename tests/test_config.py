from __future__ import annotations

import json
from pathlib import Path

import pytest

from amenhotep.config import CORE_TEMPLATES, ScaffoldConfig, load_config


def _write(tmp_path: Path, payload: dict) -> Path:
    path = tmp_path / "amenhotep.json"
    path.write_text(json.dumps(payload), encoding="utf-8")
    return path


def test_defaults() -> None:
    config = ScaffoldConfig()
    assert config.output_root == Path("indexer")
    assert config.templates == CORE_TEMPLATES
    assert config.max_workers == 1


def test_load_config_resolves_output_root_next_to_file(tmp_path: Path) -> None:
    path = _write(
        tmp_path,
        {
            "output_root": "build/indexer",
            "max_workers": 4,
            "templates": ["manifest", "config", "handler", "graphql"],
            "network_node_url": "https://starknet.example/rpc",
            "start_block": 1200,
        },
    )

    config = load_config(path)

    assert config.output_root == (tmp_path / "build" / "indexer").resolve()
    assert config.max_workers == 4
    assert config.templates[-1] == "graphql"
    assert config.network_node_url == "https://starknet.example/rpc"
    assert config.start_block == 1200


def test_unknown_keys_are_rejected(tmp_path: Path) -> None:
    with pytest.raises(ValueError, match="invalid config"):
        load_config(_write(tmp_path, {"outputs": "x"}))


def test_schema_violation_names_location(tmp_path: Path) -> None:
    with pytest.raises(ValueError, match=r"\$\['max_workers'\]"):
        load_config(_write(tmp_path, {"max_workers": 0}))


def test_core_templates_cannot_be_disabled(tmp_path: Path) -> None:
    with pytest.raises(ValueError, match="must include handler"):
        load_config(_write(tmp_path, {"templates": ["manifest", "config"]}))
