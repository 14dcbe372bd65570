# Copyright 2019-present Kensho Technologies, LLC.
"""Lexer for the query language."""
import json
import re
from typing import List, Optional

import ply.lex as lex

from ..exceptions import QueryParsingError
from .ast import SourceLocation


NAME_PATTERN = re.compile("^[_A-Za-z][_0-9A-Za-z]*$")
NUMBER_PATTERN = re.compile(r"^-?[0-9]+(\.[0-9]+)?$")


def get_source_location(text: str, position: int) -> SourceLocation:
    """Return the 1-based line and column of the given offset into the text."""
    line = text.count("\n", 0, position) + 1
    column = position - (text.rfind("\n", 0, position) + 1) + 1
    return SourceLocation(line=line, column=column)


class QueryLexer:
    """Lexer for tokenizing query text."""

    tokens = [
        "NAME",
        "NUMBER",
        "STRING",
        "LITERAL",
        "LPAREN",
        "RPAREN",
        "LBRACE",
        "RBRACE",
        "COLON",
    ]

    t_LPAREN = r"\("
    t_RPAREN = r"\)"
    t_LBRACE = r"\{"
    t_RBRACE = r"\}"
    t_COLON = r":"

    # Commas are insignificant separators, just like whitespace.
    t_ignore = " \t\r,"
    t_ignore_COMMENT = r"\#[^\n]*"

    def __init__(self) -> None:
        self.lexer: lex.Lexer = None  # type: ignore

    def t_STRING(self, t: lex.LexToken) -> lex.LexToken:
        r'"([^"\\\n]|\\.)*"'
        try:
            t.value = json.loads(t.value)
        except json.JSONDecodeError as e:
            location = get_source_location(t.lexer.lexdata, t.lexpos)
            raise QueryParsingError(
                f"Invalid string literal {t.value}: {e.msg}", location.line, location.column
            ) from e
        return t

    def t_LITERAL(self, t: lex.LexToken) -> lex.LexToken:
        r"-?[0-9A-Za-z_.][-0-9A-Za-z_.]*"
        # Names, numbers and other bare words (e.g. UUIDs) share one lexical rule, and are then
        # told apart by their full text.
        if NAME_PATTERN.match(t.value):
            t.type = "NAME"
        elif NUMBER_PATTERN.match(t.value):
            t.type = "NUMBER"
            t.value = float(t.value) if "." in t.value else int(t.value)
        return t

    def t_newline(self, t: lex.LexToken) -> None:
        r"\n+"
        t.lexer.lineno += len(t.value)

    def t_error(self, t: lex.LexToken) -> None:
        location = get_source_location(t.lexer.lexdata, t.lexpos)
        raise QueryParsingError(
            f"Unexpected character {repr(t.value[0])}", location.line, location.column
        )

    def build(self, **kwargs) -> None:  # type: ignore
        """Build the lexer."""
        self.lexer = lex.lex(module=self, errorlog=lex.NullLogger(), **kwargs)

    def input(self, data: str) -> None:
        """Set the input string to tokenize."""
        self.lexer.lineno = 1
        self.lexer.input(data)

    def token(self) -> Optional[lex.LexToken]:
        """Return the next token."""
        return self.lexer.token()

    def tokenize(self, data: str) -> List[lex.LexToken]:
        """Tokenize the input and return all tokens."""
        self.input(data)
        tokens = []
        while True:
            tok = self.token()
            if tok is None:
                break
            tokens.append(tok)
        return tokens
