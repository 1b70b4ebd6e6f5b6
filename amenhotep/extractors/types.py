from __future__ import annotations

from dataclasses import dataclass
from typing import AbstractSet

from amenhotep.models import TypeKind, TypeRef

INTEGER_TYPES: dict[str, tuple[int, bool]] = {
    "u8": (8, False),
    "u16": (16, False),
    "u32": (32, False),
    "u64": (64, False),
    "u128": (128, False),
    "u256": (256, False),
    "usize": (32, False),
    "i8": (8, True),
    "i16": (16, True),
    "i32": (32, True),
    "i64": (64, True),
    "i128": (128, True),
}
FELT_TYPES = {"felt252", "felt"}
ADDRESS_TYPES = {"ContractAddress", "EthAddress", "ClassHash", "StorageAddress"}
BYTES_TYPES = {"ByteArray", "bytes31"}
ARRAY_TYPES = {"Array", "Span"}


@dataclass(frozen=True)
class TypeExpr:
    """Type as written in source, before normalization."""

    kind: str
    path: tuple[str, ...] = ()
    args: tuple["TypeExpr", ...] = ()
    size: str = ""

    @property
    def text(self) -> str:
        if self.kind == "snapshot":
            return "@" + self.args[0].text
        if self.kind == "tuple":
            return "(" + ", ".join(arg.text for arg in self.args) + ")"
        if self.kind == "fixed_array":
            return f"[{self.args[0].text}; {self.size}]"
        base = "::".join(self.path)
        if self.args:
            base += "<" + ", ".join(arg.text for arg in self.args) + ">"
        return base

    @property
    def last(self) -> str:
        return self.path[-1] if self.path else ""


def unknown(text: str) -> TypeRef:
    return TypeRef(kind=TypeKind.UNKNOWN, name=text)


def normalize(expr: TypeExpr, user_types: AbstractSet[str] = frozenset()) -> TypeRef:
    """Map a source type onto the closed TypeRef set.

    Never raises: anything outside the table, including types declared in
    other files, becomes an unknown TypeRef that keeps the source spelling.
    """
    if expr.kind == "snapshot":
        return normalize(expr.args[0], user_types)
    if expr.kind != "path":
        return unknown(expr.text)

    name = expr.last
    if expr.args:
        if name in ARRAY_TYPES and len(expr.args) == 1:
            element = normalize(expr.args[0], user_types)
            return TypeRef(kind=TypeKind.ARRAY, name=f"{name}<{element.name}>", element=element)
        return unknown(expr.text)

    if name in INTEGER_TYPES:
        bits, signed = INTEGER_TYPES[name]
        return TypeRef(kind=TypeKind.INTEGER, name=name, bits=bits, signed=signed)
    if name == "bool":
        return TypeRef(kind=TypeKind.BOOL, name=name)
    if name in FELT_TYPES:
        return TypeRef(kind=TypeKind.FELT, name="felt252")
    if name in ADDRESS_TYPES:
        return TypeRef(kind=TypeKind.ADDRESS, name=name)
    if name in BYTES_TYPES:
        return TypeRef(kind=TypeKind.BYTES, name=name)
    if name in user_types:
        return TypeRef(kind=TypeKind.STRUCT, name=name)
    return unknown(expr.text)
