# Copyright 2017-present Kensho Technologies, LLC.
from .common import compile_query  # noqa
from .compiler_frontend import DEFAULT_MAX_SELECTION_DEPTH, compile_query_ast  # noqa
from .credentials import ANONYMOUS_CREDENTIALS, Credentials  # noqa
from .plan import (  # noqa
    CallPlan,
    FetchNodePlan,
    FetchNodesPlan,
    IntrospectionPlan,
    Pagination,
    QueryPlan,
    SchemaMutationPlan,
)
