# Copyright 2019-present Kensho Technologies, LLC.
"""Built-in fields that interfaces mandate, and that certain types carry implicitly."""
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping, Tuple

from .model import NODE_INTERFACE_NAME, Field
from .scalars import ID_SCALAR_NAME


# Names of types and plural names beginning with this prefix are reserved for built-in types.
RESERVED_TYPE_NAME_PREFIX = "SchemaQL"

ID_FIELD_NAME = "id"

ID_FIELD = Field(name=ID_FIELD_NAME, type=ID_SCALAR_NAME, non_null=True, unique=True)

# The user type is the one that callers' identities are attached to.
USER_TYPE_NAME = "User"

CREDENTIALS_FIELD_NAME = "credentials"


@dataclass(frozen=True)
class DefaultFieldRegistry:
    """Immutable tables of the fields mandated by interfaces and built into particular types.

    interface_fields: interface name -> the fields every implementing type must declare verbatim.
                      The keys of this mapping are also the complete set of declarable interfaces.
    type_fields: type name -> built-in fields that the storage layer adds to that type, and whose
                 names user-declared fields therefore may not shadow.
    """

    interface_fields: Mapping[str, Tuple[Field, ...]] = field(
        default_factory=lambda: MappingProxyType({})
    )
    type_fields: Mapping[str, Tuple[Field, ...]] = field(
        default_factory=lambda: MappingProxyType({})
    )

    def __post_init__(self) -> None:
        """Freeze the given tables, so that no caller can mutate the registry after the fact."""
        object.__setattr__(
            self,
            "interface_fields",
            MappingProxyType({key: tuple(value) for key, value in self.interface_fields.items()}),
        )
        object.__setattr__(
            self,
            "type_fields",
            MappingProxyType({key: tuple(value) for key, value in self.type_fields.items()}),
        )

    def get_interface_fields(self, interface_name: str) -> Tuple[Field, ...]:
        """Return the fields mandated by the given interface, or () for unknown interfaces."""
        return self.interface_fields.get(interface_name, ())

    def get_type_fields(self, type_name: str) -> Tuple[Field, ...]:
        """Return the built-in fields of the given type, or () if it has none."""
        return self.type_fields.get(type_name, ())

    def is_declared_interface(self, interface_name: str) -> bool:
        """Return True if the given name is that of an interface known to the registry."""
        return interface_name in self.interface_fields


DEFAULT_FIELD_REGISTRY = DefaultFieldRegistry(
    interface_fields={
        NODE_INTERFACE_NAME: (ID_FIELD,),
    },
    type_fields={
        USER_TYPE_NAME: (
            Field(
                name=CREDENTIALS_FIELD_NAME,
                type=RESERVED_TYPE_NAME_PREFIX + "Credentials",
                description="Login credentials of the user. Maintained by the storage layer.",
                non_null=True,
            ),
        ),
    },
)
