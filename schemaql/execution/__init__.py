# Copyright 2020-present Kensho Technologies, LLC.
from .api import execute_plan  # noqa
from .typedefs import ExecutionAdapter, Filters, Record  # noqa
