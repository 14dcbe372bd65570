#!/usr/bin/env python
# Copyright 2017-present Kensho Technologies, LLC.
"""Utility modeled after json.tool, pretty-prints a query read from stdin and outputs to stdout.

Used as: python -m schemaql.tool
"""
import sys

from . import pretty_print_query


def main() -> None:
    """Read a query from standard input, and output it pretty-printed to standard output."""
    query = "".join(sys.stdin.readlines())

    sys.stdout.write(pretty_print_query(query))


if __name__ == "__main__":
    main()
