from __future__ import annotations

import json
import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path
from typing import Any, Optional

from amenhotep.config import ScaffoldConfig
from amenhotep.errors import ExtractionError, ParseError
from amenhotep.executors import ApplyExecutor, DryRunExecutor, ExecutionReport
from amenhotep.extractors.base import SchemaExtractor
from amenhotep.extractors.cairo import CairoSchemaExtractor
from amenhotep.models import ContractSchema, GenerationPlan, SourceFile
from amenhotep.planner import GenerationPlanner
from amenhotep.scanner import scan_sources
from amenhotep.services import PlanReportService, validate_ordered_results
from amenhotep.targets.registry import build_registry

logger = logging.getLogger(__name__)


class IndexerScaffolder:
    """Turns a Cairo source tree into Checkpoint indexer scaffolding."""

    def __init__(
        self,
        config: Optional[ScaffoldConfig] = None,
        extractor: Optional[SchemaExtractor] = None,
    ) -> None:
        self.config = config or ScaffoldConfig()
        self.extractor = extractor or CairoSchemaExtractor()
        self.renderers = build_registry(self.config)
        self.planner = GenerationPlanner(self.renderers, self.config.templates)
        self.dry_run_executor = DryRunExecutor()
        self.apply_executor = ApplyExecutor()

    @property
    def supported_templates(self) -> set[str]:
        return set(self.renderers.keys())

    def scan(self, source_dir: Path | str) -> list[SourceFile]:
        return scan_sources(
            source_dir,
            suffix=self.config.source_suffix,
            exclude_dirs=self.config.exclude_dirs,
        )

    def _extract_item(self, idx: int, source: SourceFile) -> dict[str, Any]:
        try:
            schema = self.extractor.extract(source.text, source.relative)
        except ParseError as exc:
            return {"index": idx, "ok": False, "path": source.relative, "error": exc}
        return {"index": idx, "ok": True, "path": source.relative, "schema": schema}

    def extract_schemas(self, sources: list[SourceFile], max_workers: Optional[int] = None) -> list[ContractSchema]:
        """Extract every source, collecting all parse errors before failing.

        Results land in slots indexed by input position, so the returned
        order never depends on which worker finishes first.
        """
        workers = max_workers if max_workers is not None else self.config.max_workers
        results: list[dict[str, Any]] = []
        if workers <= 1 or len(sources) <= 1:
            results = [self._extract_item(idx, source) for idx, source in enumerate(sources)]
        else:
            with ThreadPoolExecutor(max_workers=workers) as executor:
                futures = {executor.submit(self._extract_item, idx, source): idx for idx, source in enumerate(sources)}
                ordered: dict[int, dict[str, Any]] = {}
                for future in as_completed(futures):
                    payload = future.result()
                    ordered[payload["index"]] = payload
                results = [ordered[idx] for idx in range(len(sources))]
        validate_ordered_results(results)

        errors = [item["error"] for item in results if not item["ok"]]
        if errors:
            raise ExtractionError(errors)

        schemas = [item["schema"] for item in results if item["schema"] is not None]
        logger.info("extracted %d contract(s) from %d file(s)", len(schemas), len(sources))
        return schemas

    def _resolve_output_root(self, output_root: Path | str | None) -> Path:
        return Path(output_root) if output_root is not None else Path(self.config.output_root)

    def load_schemas(self, source_dir: Path | str, max_workers: Optional[int] = None) -> list[ContractSchema]:
        return self.extract_schemas(self.scan(source_dir), max_workers=max_workers)

    def build_generation_plan(
        self,
        source_dir: Path | str,
        output_root: Path | str | None = None,
        max_workers: Optional[int] = None,
    ) -> GenerationPlan:
        schemas = self.load_schemas(source_dir, max_workers=max_workers)
        return self.planner.plan(schemas, self._resolve_output_root(output_root))

    def run(
        self,
        mode: str,
        source_dir: Path | str,
        output_root: Path | str | None = None,
        max_workers: Optional[int] = None,
    ) -> tuple[list[ContractSchema], GenerationPlan, ExecutionReport]:
        executors = {
            self.dry_run_executor.name: self.dry_run_executor,
            self.apply_executor.name: self.apply_executor,
        }
        if mode not in executors:
            raise ValueError(f"Unsupported mode '{mode}'. Supported: {', '.join(sorted(executors))}")
        schemas = self.load_schemas(source_dir, max_workers=max_workers)
        plan = self.planner.plan(schemas, self._resolve_output_root(output_root))
        return schemas, plan, executors[mode].execute(plan)

    def dry_run(self, source_dir: Path | str, output_root: Path | str | None = None) -> ExecutionReport:
        return self.run(DryRunExecutor.name, source_dir, output_root)[2]

    def generate(self, source_dir: Path | str, output_root: Path | str | None = None) -> ExecutionReport:
        return self.run(ApplyExecutor.name, source_dir, output_root)[2]

    def summarize(
        self,
        schemas: list[ContractSchema],
        plan: GenerationPlan,
        report: Optional[ExecutionReport] = None,
    ) -> dict[str, Any]:
        return PlanReportService(self.config.templates).build_summary(schemas, plan, report)

    def explain_plan(self, source_dir: Path | str, output_root: Path | str | None = None) -> dict[str, Any]:
        schemas = self.load_schemas(source_dir)
        plan = self.planner.plan(schemas, self._resolve_output_root(output_root))
        return self.summarize(schemas, plan)

    def write_plan_report(self, summary: dict[str, Any], output_file: str) -> str:
        destination = Path(output_file)
        destination.parent.mkdir(parents=True, exist_ok=True)
        destination.write_text(json.dumps(summary, indent=2), encoding="utf-8")
        return str(destination)
