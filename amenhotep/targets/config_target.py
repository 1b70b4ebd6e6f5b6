from __future__ import annotations

import json
from typing import Any

from amenhotep.models import ContractSchema, EventDecl
from amenhotep.targets.base import DEPLOY_FUNCTION, DEPLOY_MODULE, contract_dir, handler_function, handler_module


class ConfigRenderer:
    """Checkpoint configuration wiring each event to its writer."""

    name = "config"
    per_event = False

    def __init__(self, network_node_url: str = "<CHANGE_ME>", start_block: int = 0, deploy: bool = False) -> None:
        self.network_node_url = network_node_url
        self.start_block = start_block
        self.deploy = deploy

    def output_path(self, schema: ContractSchema, event: EventDecl | None = None) -> str:
        return f"{contract_dir(schema)}/checkpoint.json"

    def render(self, schema: ContractSchema, event: EventDecl | None = None) -> str:
        source: dict[str, Any] = {
            "name": schema.name,
            "contract": "<CHANGE_ME>",
            "start": self.start_block,
        }
        writers: dict[str, str] = {}
        if self.deploy:
            source["deploy_fn"] = DEPLOY_FUNCTION
            writers[DEPLOY_FUNCTION] = f"./{DEPLOY_MODULE}"
        source["events"] = [{"name": decl.name, "fn": handler_function(decl)} for decl in schema.events]
        writers.update({handler_function(decl): f"./{handler_module(decl)}" for decl in schema.events})
        payload = {
            "network_node_url": self.network_node_url,
            "sources": [source],
            "writers": writers,
        }
        return json.dumps(payload, indent=2) + "\n"
