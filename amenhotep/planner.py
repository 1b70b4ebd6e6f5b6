from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional, Sequence

from amenhotep.config import CORE_TEMPLATES
from amenhotep.errors import PlanError, TemplateError
from amenhotep.models import ContractSchema, EventDecl, GenerationPlan, GenerationPlanEntry, PlanStatus
from amenhotep.targets.base import TemplateRenderer

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RenderedFile:
    path: str
    content: bytes
    template: str
    contract: str
    origin: str


def classify(target: Path, content: bytes) -> PlanStatus:
    if not target.exists():
        return PlanStatus.CREATE
    try:
        existing = target.read_bytes()
    except OSError as exc:
        logger.warning("cannot read existing %s (%s); treating as different", target, exc)
        return PlanStatus.OVERWRITE_DIFFERENT
    return PlanStatus.OVERWRITE_IDENTICAL if existing == content else PlanStatus.OVERWRITE_DIFFERENT


class GenerationPlanner:
    def __init__(
        self,
        renderers: Mapping[str, TemplateRenderer],
        templates: Sequence[str] = CORE_TEMPLATES,
    ) -> None:
        missing = [name for name in templates if name not in renderers]
        if missing:
            raise TemplateError(", ".join(missing), "no renderer registered for template")
        self.renderers = renderers
        self.templates = tuple(templates)

    def render(self, schemas: Sequence[ContractSchema]) -> list[RenderedFile]:
        rendered: list[RenderedFile] = []
        for schema in schemas:
            for template in self.templates:
                renderer = self.renderers[template]
                targets: Sequence[Optional[EventDecl]] = schema.events if renderer.per_event else (None,)
                for event in targets:
                    origin = f"{schema.name}.{event.name}" if event else schema.name
                    origin = f"{origin} ({schema.source_path})"
                    try:
                        path = renderer.output_path(schema, event)
                        text = renderer.render(schema, event)
                    except TemplateError:
                        raise
                    except Exception as exc:
                        raise TemplateError(template, f"rendering {origin} failed: {exc}") from exc
                    rendered.append(
                        RenderedFile(
                            path=path,
                            content=text.encode("utf-8"),
                            template=template,
                            contract=schema.name,
                            origin=origin,
                        )
                    )
        return rendered

    def plan(self, schemas: Sequence[ContractSchema], output_root: Path) -> GenerationPlan:
        by_path: dict[str, list[RenderedFile]] = {}
        for item in self.render(schemas):
            by_path.setdefault(item.path, []).append(item)

        collisions = {
            path: [f"{item.template}:{item.origin}" for item in items]
            for path, items in by_path.items()
            if len(items) > 1
        }
        if collisions:
            raise PlanError(collisions)

        entries = []
        for path, (item,) in by_path.items():
            entries.append(
                GenerationPlanEntry(
                    path=path,
                    content=item.content,
                    status=classify(output_root / path, item.content),
                    template=item.template,
                    contract=item.contract,
                )
            )
        plan = GenerationPlan(output_root=output_root, entries=entries)
        logger.info("planned %d file(s) under %s: %s", len(plan.entries), output_root, plan.status_counts())
        return plan
