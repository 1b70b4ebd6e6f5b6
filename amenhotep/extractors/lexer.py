from __future__ import annotations

from dataclasses import dataclass

from amenhotep.errors import ParseError

IDENT = "ident"
NUMBER = "number"
STRING = "string"
PUNCT = "punct"
EOF = "eof"

MULTI_CHAR_PUNCT = ("::", "->", "=>")


@dataclass(frozen=True)
class Token:
    kind: str
    value: str
    line: int

    def is_punct(self, value: str) -> bool:
        return self.kind == PUNCT and self.value == value

    def is_ident(self, value: str | None = None) -> bool:
        return self.kind == IDENT and (value is None or self.value == value)


def _is_ident_start(ch: str) -> bool:
    return ch == "_" or ch.isalpha()


def _is_ident_char(ch: str) -> bool:
    return ch == "_" or ch.isalnum()


def tokenize(text: str, path: str = "<source>") -> list[Token]:
    """Split Cairo source into tokens. Comments and whitespace are dropped."""
    tokens: list[Token] = []
    i = 0
    line = 1
    n = len(text)
    while i < n:
        ch = text[i]
        if ch == "\n":
            line += 1
            i += 1
            continue
        if ch.isspace():
            i += 1
            continue
        if text.startswith("//", i):
            end = text.find("\n", i)
            i = n if end == -1 else end
            continue
        if _is_ident_start(ch):
            start = i
            while i < n and _is_ident_char(text[i]):
                i += 1
            tokens.append(Token(IDENT, text[start:i], line))
            continue
        if ch.isdigit():
            start = i
            while i < n and _is_ident_char(text[i]):
                i += 1
            tokens.append(Token(NUMBER, text[start:i], line))
            continue
        if ch in "\"'":
            start, start_line = i, line
            i += 1
            while i < n and text[i] != ch:
                if text[i] == "\\":
                    i += 1
                if i < n and text[i] == "\n":
                    line += 1
                i += 1
            if i >= n:
                raise ParseError(path, start_line, "unterminated string literal")
            i += 1
            tokens.append(Token(STRING, text[start:i], start_line))
            continue
        for punct in MULTI_CHAR_PUNCT:
            if text.startswith(punct, i):
                tokens.append(Token(PUNCT, punct, line))
                i += len(punct)
                break
        else:
            tokens.append(Token(PUNCT, ch, line))
            i += 1
    tokens.append(Token(EOF, "", line))
    return tokens
