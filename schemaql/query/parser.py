# Copyright 2019-present Kensho Technologies, LLC.
"""Parser for the query language.

Grammar:

    query      : call+
    call       : NAME arguments? block?
    arguments  : "(" argument* ")"
    argument   : value | NAME ":" value
    value      : NAME | NUMBER | STRING | LITERAL
    block      : "{" call+ "}"

Nested selections use the same "call" production as top-level calls. The parser knows nothing
about the schema: which calls exist and what their arguments mean is up to the compiler.
"""
import threading
from typing import Any, List, Optional, Tuple

import ply.lex as lex
import ply.yacc as yacc

from ..exceptions import QueryParsingError
from .ast import Argument, Call, Query, SourceLocation
from .lexer import QueryLexer, get_source_location


_TOKEN_DESCRIPTIONS = {
    "$end": "end of query",
    "NAME": "name",
    "NUMBER": "number",
    "STRING": "string",
    "LITERAL": "literal",
    "LPAREN": '"("',
    "RPAREN": '")"',
    "LBRACE": '"{"',
    "RBRACE": '"}"',
    "COLON": '":"',
}


class QueryParser:
    """Parser for query text. Instances are not thread-safe, see parse_query() for that."""

    tokens = QueryLexer.tokens

    def __init__(self) -> None:
        self.lexer = QueryLexer()
        self.lexer.build()
        self.parser: yacc.LRParser = None  # type: ignore
        self._text = ""

    def p_query(self, p: yacc.YaccProduction) -> None:
        """query : call_list"""
        p[0] = Query(calls=tuple(p[1]))

    def p_call_list_single(self, p: yacc.YaccProduction) -> None:
        """call_list : call"""
        p[0] = [p[1]]

    def p_call_list_multiple(self, p: yacc.YaccProduction) -> None:
        """call_list : call_list call"""
        p[0] = p[1] + [p[2]]

    def p_call(self, p: yacc.YaccProduction) -> None:
        """call : NAME arguments_opt block_opt"""
        location = self._location(p.lexpos(1))
        arguments = tuple(p[2])
        _validate_argument_order(p[1], arguments, location)
        p[0] = Call(name=p[1], arguments=arguments, selections=tuple(p[3]), location=location)

    def p_arguments_opt(self, p: yacc.YaccProduction) -> None:
        """arguments_opt : LPAREN argument_list RPAREN"""
        p[0] = p[2]

    def p_arguments_opt_empty(self, p: yacc.YaccProduction) -> None:
        """arguments_opt : LPAREN RPAREN
        | empty"""
        p[0] = []

    def p_argument_list_single(self, p: yacc.YaccProduction) -> None:
        """argument_list : argument"""
        p[0] = [p[1]]

    def p_argument_list_multiple(self, p: yacc.YaccProduction) -> None:
        """argument_list : argument_list argument"""
        p[0] = p[1] + [p[2]]

    def p_argument_positional(self, p: yacc.YaccProduction) -> None:
        """argument : value"""
        kind, value, position = p[1]
        p[0] = Argument(value=value, kind=kind, location=self._location(position))

    def p_argument_named(self, p: yacc.YaccProduction) -> None:
        """argument : NAME COLON value"""
        kind, value, _ = p[3]
        p[0] = Argument(value=value, kind=kind, name=p[1], location=self._location(p.lexpos(1)))

    def p_value(self, p: yacc.YaccProduction) -> None:
        """value : NAME
        | NUMBER
        | STRING
        | LITERAL"""
        p[0] = (p.slice[1].type, p[1], p.lexpos(1))

    def p_block_opt(self, p: yacc.YaccProduction) -> None:
        """block_opt : LBRACE call_list RBRACE"""
        p[0] = p[2]

    def p_block_opt_empty(self, p: yacc.YaccProduction) -> None:
        """block_opt : empty"""
        p[0] = []

    def p_empty(self, p: yacc.YaccProduction) -> None:
        """empty :"""
        p[0] = None

    def p_error(self, p: Optional[lex.LexToken]) -> None:
        expected = self._get_expected_tokens()
        if p is None:
            location = self._location(len(self._text))
            raise QueryParsingError(
                "Unexpected end of query", location.line, location.column, expected
            )
        location = self._location(p.lexpos)
        raise QueryParsingError(
            f"Unexpected {_TOKEN_DESCRIPTIONS.get(p.type, p.type)} {repr(p.value)}",
            location.line,
            location.column,
            expected,
        )

    def _get_expected_tokens(self) -> List[str]:
        """Return descriptions of the tokens the parser would have accepted in its current state."""
        state = getattr(self.parser, "state", None)
        if state is None:
            return []
        return sorted(
            _TOKEN_DESCRIPTIONS.get(token_type, token_type)
            for token_type in self.parser.action.get(state, {})
            if token_type != "error"
        )

    def _location(self, position: int) -> SourceLocation:
        return get_source_location(self._text, position)

    def build(self, **kwargs: Any) -> None:
        """Build the parser."""
        self.parser = yacc.yacc(module=self, start="query", errorlog=yacc.NullLogger(), **kwargs)

    def parse(self, data: str) -> Query:
        """Parse a query string."""
        if self.parser is None:
            self.build(debug=False, write_tables=False)

        self._text = data
        self.lexer.input(data)
        return self.parser.parse(data, lexer=self.lexer.lexer)


def _validate_argument_order(
    call_name: str, arguments: Tuple[Argument, ...], location: SourceLocation
) -> None:
    """Ensure positional arguments precede named ones, and that no name is given twice."""
    seen_named_argument = False
    seen_names = set()
    for argument in arguments:
        if argument.is_positional:
            if seen_named_argument:
                raise QueryParsingError(
                    f'Positional argument {repr(argument.value)} of "{call_name}" follows '
                    f"a named argument.",
                    location.line,
                    location.column,
                )
        else:
            seen_named_argument = True
            if argument.name in seen_names:
                raise QueryParsingError(
                    f'Argument "{argument.name}" of "{call_name}" is given more than once.',
                    location.line,
                    location.column,
                )
            seen_names.add(argument.name)


_thread_local_state = threading.local()


def _get_thread_parser() -> QueryParser:
    parser = getattr(_thread_local_state, "parser", None)
    if parser is None:
        parser = QueryParser()
        _thread_local_state.parser = parser
    return parser


def parse_query(query_text: str) -> Query:
    """Parse the given query text into a call tree.

    Safe to call concurrently from multiple threads: each thread gets its own parser instance.

    Raises:
        QueryParsingError: on any lexical or grammatical error; no partial tree is produced
    """
    if not isinstance(query_text, str):
        raise QueryParsingError(
            f"Expected query text to be a string, got {type(query_text).__name__}."
        )
    return _get_thread_parser().parse(query_text)
