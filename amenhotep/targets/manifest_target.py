from __future__ import annotations

import json

from amenhotep.models import ContractSchema, EventDecl
from amenhotep.targets.base import contract_dir, handler_function, handler_module, type_payload


class ManifestRenderer:
    """Lists what the runtime subscribes to: the contract and its events."""

    name = "manifest"
    per_event = False

    def output_path(self, schema: ContractSchema, event: EventDecl | None = None) -> str:
        return f"{contract_dir(schema)}/manifest.json"

    def render(self, schema: ContractSchema, event: EventDecl | None = None) -> str:
        payload = {
            "contract": schema.name,
            "source": schema.source_path,
            "events": [
                {
                    "name": decl.name,
                    "handler": f"{handler_module(decl)}.ts",
                    "function": handler_function(decl),
                    "fields": [{"name": f.name, "type": type_payload(f.type)} for f in decl.fields],
                }
                for decl in schema.events
            ],
            "entrypoints": [
                {
                    "name": entry.name,
                    "params": [{"name": p.name, "type": type_payload(p.type)} for p in entry.params],
                    "returns": type_payload(entry.return_type) if entry.return_type else None,
                }
                for entry in schema.entrypoints
            ],
        }
        return json.dumps(payload, indent=2) + "\n"
