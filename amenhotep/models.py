from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional, Tuple


class TypeKind(str, Enum):
    INTEGER = "integer"
    BOOL = "bool"
    FELT = "felt"
    ADDRESS = "address"
    BYTES = "bytes"
    ARRAY = "array"
    STRUCT = "struct"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class TypeRef:
    """Normalized field type.

    `name` is the canonical spelling (`u128`, `Array<felt252>`, `Position`);
    for unknown types it carries the raw source text instead.
    """

    kind: TypeKind
    name: str
    bits: Optional[int] = None
    signed: bool = False
    element: Optional["TypeRef"] = None

    @property
    def is_unknown(self) -> bool:
        return self.kind is TypeKind.UNKNOWN


@dataclass(frozen=True)
class Field:
    name: str
    type: TypeRef


@dataclass(frozen=True)
class EventDecl:
    name: str
    fields: Tuple[Field, ...] = ()


@dataclass(frozen=True)
class EntrypointDecl:
    name: str
    params: Tuple[Field, ...] = ()
    return_type: Optional[TypeRef] = None


@dataclass(frozen=True)
class ContractSchema:
    name: str
    events: Tuple[EventDecl, ...]
    entrypoints: Tuple[EntrypointDecl, ...]
    source_path: str

    def __post_init__(self) -> None:
        if not self.name:
            raise ValueError("ContractSchema.name must be non-empty")
        for label, names in (
            ("event", [e.name for e in self.events]),
            ("entrypoint", [e.name for e in self.entrypoints]),
        ):
            if len(set(names)) != len(names):
                raise ValueError(f"ContractSchema {self.name!r} has duplicate {label} names")


@dataclass(frozen=True)
class SourceFile:
    path: Path
    relative: str
    text: str


class PlanStatus(str, Enum):
    CREATE = "CREATE"
    OVERWRITE_IDENTICAL = "OVERWRITE_IDENTICAL"
    OVERWRITE_DIFFERENT = "OVERWRITE_DIFFERENT"


@dataclass(frozen=True)
class GenerationPlanEntry:
    path: str
    content: bytes
    status: PlanStatus
    template: str
    contract: str


@dataclass
class GenerationPlan:
    output_root: Path
    entries: List[GenerationPlanEntry] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.entries = sorted(self.entries, key=lambda entry: entry.path)

    @property
    def paths(self) -> List[str]:
        return [entry.path for entry in self.entries]

    @property
    def has_changes(self) -> bool:
        return any(entry.status is PlanStatus.OVERWRITE_DIFFERENT for entry in self.entries)

    def status_counts(self) -> Dict[str, int]:
        counts = {status.value: 0 for status in PlanStatus}
        for entry in self.entries:
            counts[entry.status.value] += 1
        return counts

    def get(self, path: str) -> Optional[GenerationPlanEntry]:
        for entry in self.entries:
            if entry.path == path:
                return entry
        return None
