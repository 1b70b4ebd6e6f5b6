from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path

import jsonschema

CORE_TEMPLATES = ("manifest", "config", "handler")
OPTIONAL_TEMPLATES = ("graphql", "deploy")

CONFIG_SCHEMA = {
    "type": "object",
    "additionalProperties": False,
    "properties": {
        "output_root": {"type": "string", "minLength": 1},
        "source_suffix": {"type": "string", "pattern": r"^\.[A-Za-z0-9_]+$"},
        "exclude_dirs": {"type": "array", "items": {"type": "string", "minLength": 1}},
        "max_workers": {"type": "integer", "minimum": 1, "maximum": 64},
        "templates": {
            "type": "array",
            "items": {"enum": list(CORE_TEMPLATES + OPTIONAL_TEMPLATES)},
            "uniqueItems": True,
        },
        "network_node_url": {"type": "string"},
        "start_block": {"type": "integer", "minimum": 0},
    },
}


@dataclass(frozen=True)
class ScaffoldConfig:
    output_root: Path = Path("indexer")
    source_suffix: str = ".cairo"
    exclude_dirs: tuple[str, ...] = ("target",)
    max_workers: int = 1
    templates: tuple[str, ...] = CORE_TEMPLATES
    network_node_url: str = "<CHANGE_ME>"
    start_block: int = 0


def load_config(path: Path) -> ScaffoldConfig:
    raw = json.loads(path.read_text(encoding="utf-8"))
    try:
        jsonschema.validate(instance=raw, schema=CONFIG_SCHEMA)
    except jsonschema.ValidationError as exc:
        location = "$" + "".join(f"[{p!r}]" for p in exc.absolute_path)
        raise ValueError(f"invalid config {path} at {location}: {exc.message}") from exc

    templates = tuple(raw.get("templates", CORE_TEMPLATES))
    missing = [name for name in CORE_TEMPLATES if name not in templates]
    if missing:
        raise ValueError(f"invalid config {path}: templates must include {', '.join(missing)}")

    # relative output roots are anchored at the config file, not the cwd
    output_root = Path(raw.get("output_root", "indexer"))
    if not output_root.is_absolute():
        output_root = (path.parent / output_root).resolve()

    return ScaffoldConfig(
        output_root=output_root,
        source_suffix=str(raw.get("source_suffix", ".cairo")),
        exclude_dirs=tuple(raw.get("exclude_dirs", ("target",))),
        max_workers=int(raw.get("max_workers", 1)),
        templates=templates,
        network_node_url=str(raw.get("network_node_url", "<CHANGE_ME>")),
        start_block=int(raw.get("start_block", 0)),
    )
