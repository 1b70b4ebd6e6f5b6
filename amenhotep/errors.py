from __future__ import annotations

from typing import Dict, List, Sequence


class ScaffoldError(Exception):
    """Base class for every error raised by the scaffolding pipeline."""


class ScanError(ScaffoldError):
    def __init__(self, path: str, message: str) -> None:
        super().__init__(f"{path}: {message}")
        self.path = path
        self.message = message


class ParseError(ScaffoldError):
    def __init__(self, path: str, line: int, message: str) -> None:
        super().__init__(f"{path}:{line}: {message}")
        self.path = path
        self.line = line
        self.message = message


class ExtractionError(ScaffoldError):
    """Every ParseError collected across one extraction batch."""

    def __init__(self, errors: Sequence[ParseError]) -> None:
        self.errors: List[ParseError] = sorted(errors, key=lambda e: (e.path, e.line))
        noun = "error" if len(self.errors) == 1 else "errors"
        super().__init__(f"{len(self.errors)} parse {noun}: " + "; ".join(str(e) for e in self.errors))


class TemplateError(ScaffoldError):
    def __init__(self, template: str, message: str) -> None:
        super().__init__(f"template {template!r}: {message}")
        self.template = template
        self.message = message


class PlanError(ScaffoldError):
    def __init__(self, conflicting_paths: Dict[str, List[str]]) -> None:
        self.conflicting_paths = {path: list(origins) for path, origins in sorted(conflicting_paths.items())}
        details = "; ".join(
            f"{path} <- {', '.join(origins)}" for path, origins in self.conflicting_paths.items()
        )
        super().__init__(f"output path collision: {details}")


class WriteError(ScaffoldError):
    def __init__(self, path: str, cause: BaseException) -> None:
        super().__init__(f"{path}: {cause}")
        self.path = path
        self.cause = cause
