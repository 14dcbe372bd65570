# Copyright 2019-present Kensho Technologies, LLC.
from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class Credentials:
    """Identity of the caller, as established by the authentication layer.

    Queries compiled without credentials run as an anonymous, non-admin caller.
    """

    user_id: Optional[str] = None
    is_admin: bool = False


ANONYMOUS_CREDENTIALS = Credentials()
