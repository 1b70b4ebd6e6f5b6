from __future__ import annotations

import re
from typing import AbstractSet, Any, Iterable, Optional, Protocol

from amenhotep.models import ContractSchema, EventDecl, TypeKind, TypeRef

TS_RESERVED = {
    "break", "case", "catch", "class", "const", "continue", "debugger", "default", "delete",
    "do", "else", "enum", "export", "extends", "false", "finally", "for", "function", "if",
    "import", "in", "instanceof", "new", "null", "return", "super", "switch", "this", "throw",
    "true", "try", "typeof", "var", "void", "while", "with", "let", "static", "yield", "await",
    "implements", "interface", "package", "private", "protected", "public",
    # not bindable in ES modules
    "arguments", "eval",
}

# Names already bound inside a generated writer: its parameters and the globals the stub calls.
WRITER_PARAMS = ("block", "tx", "event", "mysql")
WRITER_SCOPE = frozenset(WRITER_PARAMS + ("Error", "undefined"))

DEPLOY_FUNCTION = "handleDeploy"
DEPLOY_MODULE = "handlers/deploy"


class TemplateRenderer(Protocol):
    name: str
    per_event: bool

    def output_path(self, schema: ContractSchema, event: Optional[EventDecl] = None) -> str:
        ...

    def render(self, schema: ContractSchema, event: Optional[EventDecl] = None) -> str:
        ...


def snake_case(name: str) -> str:
    text = re.sub(r"([A-Z]+)([A-Z][a-z])", r"\1_\2", name)
    text = re.sub(r"([a-z0-9])([A-Z])", r"\1_\2", text)
    return re.sub(r"_+", "_", text).strip("_").lower()


def contract_dir(schema: ContractSchema) -> str:
    return snake_case(schema.name)


def handler_module(event: EventDecl) -> str:
    return f"handlers/{snake_case(event.name)}"


def handler_function(event: EventDecl) -> str:
    return f"handle{event.name[:1].upper()}{event.name[1:]}"


def ts_identifier(name: str, taken: AbstractSet[str] = frozenset()) -> str:
    candidate = f"{name}_" if name in TS_RESERVED or name in taken else name
    while candidate in taken:
        candidate += "_"
    return candidate


def ts_identifiers(names: Iterable[str], taken: AbstractSet[str] = WRITER_SCOPE) -> list[str]:
    """Local names for destructured fields, unique against each other and `taken`."""
    used = set(taken)
    result: list[str] = []
    for name in names:
        identifier = ts_identifier(name, used)
        used.add(identifier)
        result.append(identifier)
    return result


def type_payload(type_ref: TypeRef) -> dict[str, Any]:
    payload: dict[str, Any] = {"kind": type_ref.kind.value, "name": type_ref.name}
    if type_ref.kind is TypeKind.INTEGER:
        payload["bits"] = type_ref.bits
        payload["signed"] = type_ref.signed
    if type_ref.element is not None:
        payload["element"] = type_payload(type_ref.element)
    return payload


def signature(name: str, fields) -> str:
    return f"{name}(" + ", ".join(f"{f.name}: {f.type.name}" for f in fields) + ")"
