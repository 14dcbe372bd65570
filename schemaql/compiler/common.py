# Copyright 2017-present Kensho Technologies, LLC.
from typing import Optional

from ..query.parser import parse_query
from ..schema.schema_info import SchemaInfo
from .compiler_frontend import DEFAULT_MAX_SELECTION_DEPTH, compile_query_ast
from .credentials import Credentials
from .plan import QueryPlan


def compile_query(
    schema_info: SchemaInfo,
    query_text: str,
    credentials: Optional[Credentials] = None,
    max_depth: int = DEFAULT_MAX_SELECTION_DEPTH,
) -> QueryPlan:
    """Parse the query text, and compile it against the schema into a QueryPlan.

    Args:
        schema_info: the validated schema snapshot to compile against
        query_text: str, the query to compile
        credentials: identity of the caller, or None for anonymous callers
        max_depth: maximum nesting depth of selections

    Returns:
        QueryPlan with one call plan per top-level call, in declared order

    Raises:
        QueryParsingError: if the query text is malformed
        QueryCompilationError: if the query does not fit the schema
        QueryAuthorizationError: if the query changes the schema without admin credentials
    """
    return compile_query_ast(schema_info, parse_query(query_text), credentials, max_depth)
