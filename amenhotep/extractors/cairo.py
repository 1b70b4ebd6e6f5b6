from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional

from amenhotep.errors import ParseError
from amenhotep.extractors.lexer import EOF, IDENT, Token, tokenize
from amenhotep.extractors.types import TypeExpr, normalize
from amenhotep.models import ContractSchema, EntrypointDecl, EventDecl, Field

logger = logging.getLogger(__name__)

CONTRACT_ATTRS = {"starknet::contract", "contract"}
ENTRYPOINT_FN_ATTRS = {"external", "view"}
ENTRYPOINT_IMPL_ATTRS = {("abi", "embed_v0"), ("external", "v0")}
FIELD_MODIFIERS = {"pub", "ref", "mut"}

MAX_TYPE_DEPTH = 64

OPENERS = {"(": ")", "[": "]", "{": "}"}
CLOSERS = {v: k for k, v in OPENERS.items()}


@dataclass(frozen=True)
class _Attribute:
    name: str
    args: str
    line: int


@dataclass
class _RawField:
    name: str
    type: TypeExpr
    line: int


@dataclass
class _RawEvent:
    name: str
    line: int
    fields: Optional[list[_RawField]] = None
    payload: Optional[TypeExpr] = None


@dataclass
class _RawEntrypoint:
    name: str
    line: int
    params: list[_RawField]
    returns: Optional[TypeExpr]


@dataclass
class _RawContract:
    name: str
    line: int
    events: list[_RawEvent] = field(default_factory=list)
    entrypoints: list[_RawEntrypoint] = field(default_factory=list)


def _has_attr(attrs: list[_Attribute], names: set[str]) -> bool:
    return any(attr.name in names for attr in attrs)


class _Parser:
    """Recognizes the declaration grammar of one Cairo file.

    Only `mod`, `struct`, `enum`, `fn` and `impl` items are looked at; every
    other item and every function body is skipped by bracket balancing. The
    first pass only records raw declarations, type resolution happens after
    the whole file is read so forward references inside the file resolve.
    """

    def __init__(self, tokens: list[Token], path: str) -> None:
        self.tokens = tokens
        self.pos = 0
        self.path = path
        self.structs: dict[str, list[_RawField]] = {}
        self.enums: set[str] = set()
        self.contracts: list[_RawContract] = []

    # token helpers

    def _peek(self, offset: int = 0) -> Token:
        index = min(self.pos + offset, len(self.tokens) - 1)
        return self.tokens[index]

    def _next(self) -> Token:
        token = self.tokens[self.pos]
        if token.kind != EOF:
            self.pos += 1
        return token

    def _error(self, token: Token, message: str) -> ParseError:
        return ParseError(self.path, token.line, message)

    def _describe(self, token: Token) -> str:
        return "end of file" if token.kind == EOF else f"'{token.value}'"

    def _expect_punct(self, value: str, context: str) -> Token:
        token = self._peek()
        if not token.is_punct(value):
            raise self._error(token, f"expected '{value}' {context}, found {self._describe(token)}")
        return self._next()

    def _expect_ident(self, context: str) -> Token:
        token = self._peek()
        if token.kind != IDENT:
            raise self._error(token, f"expected {context}, found {self._describe(token)}")
        return self._next()

    def _group(self) -> list[Token]:
        """Consume a balanced (), [] or {} group and return its inner tokens."""
        stack = [self._next()]
        inner: list[Token] = []
        while True:
            token = self._next()
            if token.kind == EOF:
                opener = stack[-1]
                raise self._error(opener, f"unclosed '{opener.value}' (reached end of file)")
            if token.kind == "punct" and token.value in OPENERS:
                stack.append(token)
            elif token.kind == "punct" and token.value in CLOSERS:
                opener = stack.pop()
                if OPENERS[opener.value] != token.value:
                    raise self._error(
                        token,
                        f"mismatched '{token.value}' (expected '{OPENERS[opener.value]}' for '{opener.value}' at line {opener.line})",
                    )
                if not stack:
                    return inner
            inner.append(token)

    def _skip_generics(self) -> None:
        if not self._peek().is_punct("<"):
            return
        opener = self._next()
        depth = 1
        while depth:
            token = self._next()
            if token.kind == EOF:
                raise self._error(opener, "unclosed '<' (reached end of file)")
            if token.is_punct("<"):
                depth += 1
            elif token.is_punct(">"):
                depth -= 1

    def _skip_item(self) -> None:
        stack: list[Token] = []
        while True:
            token = self._peek()
            if token.kind == EOF:
                if stack:
                    raise self._error(stack[-1], f"unclosed '{stack[-1].value}' (reached end of file)")
                return
            if token.kind == "punct" and token.value in CLOSERS and not stack:
                if token.value == "}":
                    return
                raise self._error(token, f"unexpected '{token.value}'")
            self._next()
            if token.kind != "punct":
                continue
            if token.value in OPENERS:
                stack.append(token)
            elif token.value in CLOSERS:
                opener = stack.pop()
                if OPENERS[opener.value] != token.value:
                    raise self._error(
                        token,
                        f"mismatched '{token.value}' (expected '{OPENERS[opener.value]}' for '{opener.value}' at line {opener.line})",
                    )
                if not stack and token.value == "}":
                    if self._peek().is_punct(";"):
                        self._next()
                    return
            elif token.value == ";" and not stack:
                return

    # grammar

    def parse(self) -> None:
        self._items(None, None)

    def _items(self, contract: Optional[_RawContract], opener: Optional[Token]) -> None:
        while True:
            token = self._peek()
            if token.kind == EOF:
                if opener is not None:
                    raise self._error(opener, "unclosed '{' (reached end of file)")
                return
            if token.is_punct("}"):
                if opener is None:
                    raise self._error(token, "unexpected '}'")
                self._next()
                return
            attrs = self._attributes()
            self._item(attrs, contract)

    def _attributes(self) -> list[_Attribute]:
        attrs: list[_Attribute] = []
        while self._peek().is_punct("#"):
            hash_token = self._next()
            if self._peek().is_punct("!"):
                self._next()
            if not self._peek().is_punct("["):
                raise self._error(hash_token, "expected '[' after '#'")
            inner = self._group()
            name_parts: list[str] = []
            index = 0
            while index < len(inner) and (inner[index].kind == IDENT or inner[index].is_punct("::")):
                name_parts.append(inner[index].value)
                index += 1
            args = ""
            if index < len(inner) and inner[index].is_punct("("):
                depth = 0
                arg_tokens: list[str] = []
                for token in inner[index:]:
                    if token.is_punct("("):
                        depth += 1
                        if depth == 1:
                            continue
                    elif token.is_punct(")"):
                        depth -= 1
                        if depth == 0:
                            break
                    arg_tokens.append(token.value)
                args = "".join(arg_tokens)
            attrs.append(_Attribute(name="".join(name_parts), args=args, line=hash_token.line))
        return attrs

    def _skip_visibility(self) -> None:
        if self._peek().is_ident("pub"):
            self._next()
            if self._peek().is_punct("("):
                self._group()

    def _item(self, attrs: list[_Attribute], contract: Optional[_RawContract]) -> None:
        self._skip_visibility()
        token = self._peek()
        if token.is_ident("mod"):
            self._module(attrs, contract)
        elif token.is_ident("struct"):
            self._struct()
        elif token.is_ident("enum"):
            self._enum(attrs, contract)
        elif token.is_ident("fn"):
            self._function(attrs, contract, exported=False)
        elif token.is_ident("impl"):
            self._impl(attrs, contract)
        else:
            self._skip_item()

    def _module(self, attrs: list[_Attribute], contract: Optional[_RawContract]) -> None:
        self._next()
        name = self._expect_ident("module name")
        if self._peek().is_punct(";"):
            self._next()
            return
        opener = self._expect_punct("{", f"after mod {name.value}")
        if not _has_attr(attrs, CONTRACT_ATTRS):
            # helper modules still contribute structs for type resolution
            self._items(None, opener)
            return
        if contract is not None:
            raise self._error(name, f"contract module '{name.value}' nested inside contract '{contract.name}'")
        if self.contracts:
            first = self.contracts[0]
            raise self._error(
                name,
                f"second contract module '{name.value}' in one file (first is '{first.name}' at line {first.line})",
            )
        raw = _RawContract(name=name.value, line=name.line)
        self.contracts.append(raw)
        self._items(raw, opener)

    def _struct(self) -> None:
        self._next()
        name = self._expect_ident("struct name")
        self._skip_generics()
        token = self._peek()
        fields: list[_RawField] = []
        if token.is_punct(";"):
            self._next()
        elif token.is_punct("("):
            self._group()
            if self._peek().is_punct(";"):
                self._next()
        elif token.is_punct("{"):
            fields = self._field_list(self._next(), "}")
        else:
            raise self._error(token, f"expected '{{' after struct {name.value}, found {self._describe(token)}")
        self.structs.setdefault(name.value, fields)

    def _enum(self, attrs: list[_Attribute], contract: Optional[_RawContract]) -> None:
        self._next()
        name = self._expect_ident("enum name")
        self._skip_generics()
        opener = self._expect_punct("{", f"after enum {name.value}")
        variants: list[_RawEvent] = []
        while True:
            token = self._peek()
            if token.is_punct("}"):
                self._next()
                break
            if token.kind == EOF:
                raise self._error(opener, "unclosed '{' (reached end of file)")
            self._attributes()
            variant = self._expect_ident(f"variant name in enum {name.value}")
            payload: Optional[TypeExpr] = None
            if self._peek().is_punct(":"):
                self._next()
                payload = self._type()
            elif self._peek().is_punct("("):
                self._group()
            token = self._peek()
            if token.is_punct(","):
                self._next()
            elif not token.is_punct("}"):
                raise self._error(
                    token, f"expected ',' or '}}' after variant {variant.value}, found {self._describe(token)}"
                )
            variants.append(_RawEvent(name=variant.value, line=variant.line, payload=payload))
        self.enums.add(name.value)
        if contract is not None and _has_attr(attrs, {"event"}):
            contract.events.extend(variants)

    def _function(self, attrs: list[_Attribute], contract: Optional[_RawContract], exported: bool) -> None:
        self._next()
        name = self._expect_ident("function name")
        self._skip_generics()
        opener = self._expect_punct("(", f"after fn {name.value}")
        params = [param for param in self._field_list(opener, ")") if param.name != "self"]
        returns: Optional[TypeExpr] = None
        if self._peek().is_punct("->"):
            self._next()
            returns = self._type()
            if returns.kind == "tuple" and not returns.args:
                # `-> ()` is the same as no return type
                returns = None
        # legacy modifiers such as `nopanic` or `implicits(...)`
        while not (self._peek().is_punct("{") or self._peek().is_punct(";")):
            token = self._peek()
            if token.kind == EOF:
                raise self._error(name, f"expected body of fn {name.value}, reached end of file")
            if token.kind == "punct" and token.value in OPENERS:
                self._group()
            else:
                self._next()
        if self._peek().is_punct(";"):
            self._next()
        else:
            self._group()

        if contract is None:
            return
        if _has_attr(attrs, {"event"}):
            contract.events.append(_RawEvent(name=name.value, line=name.line, fields=params))
        elif exported or _has_attr(attrs, ENTRYPOINT_FN_ATTRS):
            contract.entrypoints.append(
                _RawEntrypoint(name=name.value, line=name.line, params=params, returns=returns)
            )

    def _impl(self, attrs: list[_Attribute], contract: Optional[_RawContract]) -> None:
        impl_token = self._next()
        while not (self._peek().is_punct("{") or self._peek().is_punct(";")):
            token = self._peek()
            if token.kind == EOF:
                raise self._error(impl_token, "expected impl body, reached end of file")
            if token.kind == "punct" and token.value in OPENERS:
                self._group()
            else:
                self._next()
        if self._peek().is_punct(";"):
            # `impl X = path::Impl<ContractState>;` embeds an impl declared elsewhere
            self._next()
            return
        opener = self._next()
        exported = contract is not None and any((a.name, a.args) in ENTRYPOINT_IMPL_ATTRS for a in attrs)
        while True:
            token = self._peek()
            if token.is_punct("}"):
                self._next()
                return
            if token.kind == EOF:
                raise self._error(opener, "unclosed '{' (reached end of file)")
            inner_attrs = self._attributes()
            self._skip_visibility()
            if self._peek().is_ident("fn"):
                self._function(inner_attrs, contract, exported=exported)
            else:
                self._skip_item()

    def _field_list(self, opener: Token, closer: str) -> list[_RawField]:
        fields: list[_RawField] = []
        while True:
            token = self._peek()
            if token.is_punct(closer):
                self._next()
                return fields
            if token.kind == EOF:
                raise self._error(opener, f"unclosed '{opener.value}' (reached end of file)")
            self._attributes()
            while self._peek().kind == IDENT and self._peek().value in FIELD_MODIFIERS and not self._peek(1).is_punct(":"):
                self._next()
                if self._peek().is_punct("("):
                    self._group()
            name = self._expect_ident("field name")
            if name.value == "self" and not self._peek().is_punct(":"):
                type_expr = TypeExpr(kind="path", path=("Self",))
            else:
                self._expect_punct(":", f"after field '{name.value}'")
                type_expr = self._type()
            fields.append(_RawField(name=name.value, type=type_expr, line=name.line))
            token = self._peek()
            if token.is_punct(","):
                self._next()
            elif not token.is_punct(closer):
                raise self._error(
                    token, f"expected ',' or '{closer}' after field '{name.value}', found {self._describe(token)}"
                )

    def _type(self, depth: int = 0) -> TypeExpr:
        token = self._peek()
        if depth > MAX_TYPE_DEPTH:
            raise self._error(token, f"type nested more than {MAX_TYPE_DEPTH} levels deep")
        if token.is_punct("@"):
            self._next()
            return TypeExpr(kind="snapshot", args=(self._type(depth + 1),))
        if token.is_punct("("):
            self._next()
            elements: list[TypeExpr] = []
            while not self._peek().is_punct(")"):
                elements.append(self._type(depth + 1))
                if self._peek().is_punct(","):
                    self._next()
                elif not self._peek().is_punct(")"):
                    raise self._error(self._peek(), f"expected ',' or ')' in tuple type, found {self._describe(self._peek())}")
            self._next()
            return TypeExpr(kind="tuple", args=tuple(elements))
        if token.is_punct("["):
            self._next()
            element = self._type(depth + 1)
            self._expect_punct(";", "in fixed-size array type")
            size = self._expect_size()
            self._expect_punct("]", "to close fixed-size array type")
            return TypeExpr(kind="fixed_array", args=(element,), size=size)
        if token.kind == IDENT:
            path = [self._next().value]
            args: list[TypeExpr] = []
            while self._peek().is_punct("::"):
                self._next()
                if self._peek().is_punct("<"):
                    break
                path.append(self._expect_ident("type path segment").value)
            if self._peek().is_punct("<"):
                self._next()
                while not self._peek().is_punct(">"):
                    args.append(self._type(depth + 1))
                    if self._peek().is_punct(","):
                        self._next()
                    elif not self._peek().is_punct(">"):
                        raise self._error(
                            self._peek(), f"expected ',' or '>' in generic arguments, found {self._describe(self._peek())}"
                        )
                self._next()
            return TypeExpr(kind="path", path=tuple(path), args=tuple(args))
        raise self._error(token, f"expected a type, found {self._describe(token)}")

    def _expect_size(self) -> str:
        token = self._peek()
        if token.kind not in ("number", IDENT):
            raise self._error(token, f"expected array size, found {self._describe(token)}")
        return self._next().value


class CairoSchemaExtractor:
    """Extracts the indexable surface of one Cairo contract file."""

    name = "cairo"
    suffix = ".cairo"

    def extract(self, text: str, path: str) -> Optional[ContractSchema]:
        parser = _Parser(tokenize(text, path), path)
        try:
            return self._build(parser, path)
        except RecursionError as exc:
            raise ParseError(path, parser._peek().line, "declarations nested too deeply") from exc

    def _build(self, parser: _Parser, path: str) -> Optional[ContractSchema]:
        parser.parse()
        if not parser.contracts:
            return None

        raw = parser.contracts[0]
        user_types = set(parser.structs) | parser.enums

        events: list[EventDecl] = []
        first_seen: dict[str, int] = {}
        for raw_event in raw.events:
            if raw_event.name in first_seen:
                raise ParseError(
                    path,
                    raw_event.line,
                    f"duplicate event '{raw_event.name}' in contract '{raw.name}' "
                    f"(first declared at line {first_seen[raw_event.name]})",
                )
            first_seen[raw_event.name] = raw_event.line
            raw_fields = raw_event.fields
            if raw_fields is None:
                raw_fields = self._payload_fields(raw_event, parser, path)
            fields = self._fields(raw_fields, user_types, path, owner=f"event '{raw_event.name}'")
            events.append(EventDecl(name=raw_event.name, fields=tuple(fields)))

        entrypoints: list[EntrypointDecl] = []
        first_seen = {}
        for raw_entry in raw.entrypoints:
            if raw_entry.name in first_seen:
                raise ParseError(
                    path,
                    raw_entry.line,
                    f"duplicate entrypoint '{raw_entry.name}' in contract '{raw.name}' "
                    f"(first declared at line {first_seen[raw_entry.name]})",
                )
            first_seen[raw_entry.name] = raw_entry.line
            entrypoints.append(
                EntrypointDecl(
                    name=raw_entry.name,
                    params=tuple(
                        Field(name=p.name, type=normalize(p.type, user_types)) for p in raw_entry.params
                    ),
                    return_type=normalize(raw_entry.returns, user_types) if raw_entry.returns else None,
                )
            )

        logger.debug(
            "%s: contract %s with %d event(s), %d entrypoint(s)", path, raw.name, len(events), len(entrypoints)
        )
        return ContractSchema(
            name=raw.name,
            events=tuple(events),
            entrypoints=tuple(entrypoints),
            source_path=path,
        )

    def _payload_fields(self, event: _RawEvent, parser: _Parser, path: str) -> list[_RawField]:
        payload = event.payload
        if payload is None:
            return []
        if payload.kind == "tuple" and not payload.args:
            return []
        if payload.kind == "path" and not payload.args:
            if payload.last in parser.structs:
                return parser.structs[payload.last]
            if payload.last in parser.enums:
                logger.warning(
                    "%s:%d: event %s wraps enum %s; nested events are not expanded",
                    path,
                    event.line,
                    event.name,
                    payload.last,
                )
                return []
        logger.warning(
            "%s:%d: payload %s of event %s is not declared in this file; event has no fields",
            path,
            event.line,
            payload.text,
            event.name,
        )
        return []

    def _fields(self, raw_fields: list[_RawField], user_types: set[str], path: str, owner: str) -> list[Field]:
        fields: list[Field] = []
        seen: set[str] = set()
        for raw_field in raw_fields:
            if raw_field.name in seen:
                raise ParseError(path, raw_field.line, f"duplicate field '{raw_field.name}' in {owner}")
            seen.add(raw_field.name)
            fields.append(Field(name=raw_field.name, type=normalize(raw_field.type, user_types)))
        return fields
