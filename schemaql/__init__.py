# Copyright 2017-present Kensho Technologies, LLC.
"""Commonly-used functions and data types from this package."""
from typing import Any, List, Optional

from .compiler import (  # noqa
    DEFAULT_MAX_SELECTION_DEPTH,
    Credentials,
    QueryPlan,
    compile_query,
    compile_query_ast,
)
from .exceptions import (  # noqa
    QueryAuthorizationError,
    QueryCompilationError,
    QueryExecutionError,
    QueryParsingError,
    SchemaQLError,
    SchemaValidationError,
)
from .execution import ExecutionAdapter, execute_plan  # noqa
from .query import parse_query, pretty_print_query, print_query  # noqa
from .schema import (  # noqa
    DEFAULT_FIELD_REGISTRY,
    DefaultFieldRegistry,
    Field,
    ObjectType,
    Schema,
    SchemaInfo,
    apply_schema_change,
    load_schema,
    make_schema_info,
    validate_schema,
)


__package_name__ = "schemaql"
__version__ = "0.1.0"


def execute_query(
    schema_info: SchemaInfo,
    adapter: ExecutionAdapter,
    query_text: str,
    credentials: Optional[Credentials] = None,
    max_depth: int = DEFAULT_MAX_SELECTION_DEPTH,
) -> List[Any]:
    """Parse, compile and execute the query, and return one result per top-level call.

    The whole query is compiled before any of it is executed, so a query that fails to compile
    never reaches the adapter.

    Args:
        schema_info: the validated schema snapshot the adapter's data conforms to
        adapter: the ExecutionAdapter through which to access the backing store
        query_text: str, the query to run
        credentials: identity of the caller, or None for anonymous callers
        max_depth: maximum nesting depth of selections

    Returns:
        list with the result of each top-level call, in declared order

    Raises:
        QueryParsingError: if the query text is malformed
        QueryCompilationError: if the query does not fit the schema
        QueryAuthorizationError: if the query changes the schema without admin credentials
        QueryExecutionError: if the backing store fails
    """
    plan = compile_query(schema_info, query_text, credentials=credentials, max_depth=max_depth)
    return execute_plan(plan, adapter)
