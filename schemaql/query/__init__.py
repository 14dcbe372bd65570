# Copyright 2017-present Kensho Technologies, LLC.
"""Parsing and printing of query text."""
from .ast import Argument, Call, Query, SourceLocation  # noqa
from .lexer import QueryLexer  # noqa
from .parser import QueryParser, parse_query  # noqa
from .printer import pretty_print_query, print_query  # noqa
