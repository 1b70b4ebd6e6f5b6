from __future__ import annotations

from typing import Optional

from amenhotep.config import ScaffoldConfig
from amenhotep.targets.base import TemplateRenderer
from amenhotep.targets.config_target import ConfigRenderer
from amenhotep.targets.graphql_target import GraphQLRenderer
from amenhotep.targets.handler_target import DeployRenderer, HandlerRenderer
from amenhotep.targets.manifest_target import ManifestRenderer


def build_registry(config: Optional[ScaffoldConfig] = None) -> dict[str, TemplateRenderer]:
    config = config or ScaffoldConfig()
    renderers = [
        ManifestRenderer(),
        ConfigRenderer(
            network_node_url=config.network_node_url,
            start_block=config.start_block,
            deploy="deploy" in config.templates,
        ),
        HandlerRenderer(),
        DeployRenderer(),
        GraphQLRenderer(),
    ]
    return {renderer.name: renderer for renderer in renderers}
