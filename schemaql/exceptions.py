# Copyright 2017-present Kensho Technologies, LLC.
from typing import List, Optional, Sequence


class SchemaQLError(Exception):
    """Generic error when processing schemaql queries or schemas."""


class QueryParsingError(SchemaQLError):
    """Exception raised when the provided query string could not be parsed.

    Carries the 1-based line and column of the offending input, and the names of the tokens
    that would have been accepted at that point, when those are known.
    """

    def __init__(
        self,
        message: str,
        line: Optional[int] = None,
        column: Optional[int] = None,
        expected: Sequence[str] = (),
    ) -> None:
        """Record the location of the parsing failure alongside its message."""
        super().__init__(message)
        self.message = message
        self.line = line
        self.column = column
        self.expected = tuple(expected)

    def __str__(self) -> str:
        """Return the message, together with the location and the expected tokens if known."""
        parts = [self.message]
        if self.line is not None:
            parts.append(f"(line {self.line}, column {self.column})")
        if self.expected:
            parts.append("Expected one of: {}.".format(", ".join(self.expected)))
        return " ".join(parts)


class SchemaValidationError(SchemaQLError):
    """Exception raised when a schema definition violates one or more schema invariants.

    All violations found by the validation stage that failed are available in "errors",
    so that callers can report every required fix at once.
    """

    def __init__(self, errors: List[str]) -> None:
        """Record the full list of schema violations."""
        if not errors:
            raise ValueError("Cannot raise SchemaValidationError without at least one error.")
        super().__init__("; ".join(errors))
        self.errors = list(errors)


class QueryCompilationError(SchemaQLError):
    """Exception raised when a well-formed query cannot be compiled against the schema.

    This could be due to many reasons, such as:
    - the query uses a call name that does not exist;
    - the query references a type or field that is not present in the schema;
    - a selection's shape does not fit its field, e.g. "count" requested on a scalar field;
    - a schema mutation would produce an invalid schema.
    """


class QueryAuthorizationError(SchemaQLError):
    """Exception raised when the caller is not allowed to run a query, e.g. non-admin mutations."""


class QueryExecutionError(SchemaQLError):
    """Exception raised by execution adapters when the backing store fails to run a plan."""
