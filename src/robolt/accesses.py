"""Read-only views over the permission data returned by the server."""

import logging
from types import MappingProxyType
from typing import Any, FrozenSet, Iterable, Iterator, Mapping, Optional, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

logger = logging.getLogger(__name__)


class ModelAccess(BaseModel):
    """Model level permission flags."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    read: bool = False
    write: bool = False
    write_all_required: bool = Field(
        False,
        validation_alias=AliasChoices("writeAllRequired", "write_all_required"),
        description="Every required field is writable, so documents can be created",
    )


class FieldAccess(BaseModel):
    """Field level permission flags. Missing flags mean no access."""

    model_config = ConfigDict(frozen=True)

    read: bool = False
    write: bool = False


class AccessDescriptor(BaseModel):
    """Permission snapshot for one model and its field paths."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    model: ModelAccess = Field(default_factory=ModelAccess)
    field_accesses: Mapping[str, FieldAccess] = Field(
        default_factory=dict, alias="fields"
    )


class Accesses:
    """Answers permission questions for one model.

    Unknown field paths are treated as inaccessible.
    """

    __slots__ = ("_descriptor", "_fields")

    def __init__(self, accesses: Union[AccessDescriptor, Mapping[str, Any]]):
        if not isinstance(accesses, AccessDescriptor):
            accesses = AccessDescriptor.model_validate(accesses)
        object.__setattr__(self, "_descriptor", accesses)
        object.__setattr__(
            self, "_fields", MappingProxyType(dict(accesses.field_accesses))
        )

    def __setattr__(self, name: str, value: Any) -> None:
        raise AttributeError(f"{type(self).__name__} is immutable")

    @property
    def model(self) -> ModelAccess:
        return self._descriptor.model

    @property
    def fields(self) -> Mapping[str, FieldAccess]:
        return self._fields

    def can_read_model(self) -> bool:
        return self.model.read

    def can_write_model(self) -> bool:
        return self.model.write

    def can_create_model(self) -> bool:
        return self.model.write_all_required

    def can_read_field(self, path: str) -> bool:
        field = self.fields.get(path)
        return field.read if field is not None else False

    def can_write_field(self, path: str) -> bool:
        field = self.fields.get(path)
        return field.write if field is not None else False

    def __repr__(self) -> str:
        return f"Accesses(model={self.model!r}, fields={len(self.fields)})"


class AccessGroups:
    """The access group names known by the server.

    Used to sanity check group names on the client side. Unknown names are
    reported as warnings on the given logger and never raise.
    """

    __slots__ = ("_groups", "_logger")

    def __init__(
        self,
        access_groups: Iterable[str],
        diagnostics_logger: Optional[logging.Logger] = None,
    ):
        object.__setattr__(self, "_groups", frozenset(access_groups))
        object.__setattr__(self, "_logger", diagnostics_logger or logger)

    def __setattr__(self, name: str, value: Any) -> None:
        raise AttributeError(f"{type(self).__name__} is immutable")

    @classmethod
    def from_payload(
        cls, data: Any, diagnostics_logger: Optional[logging.Logger] = None
    ) -> "AccessGroups":
        """Build from the decoded response, a list of names or an object
        holding them under ``accessGroups``."""
        if isinstance(data, Mapping):
            data = data.get("accessGroups")
        return cls(data or [], diagnostics_logger=diagnostics_logger)

    @property
    def access_groups(self) -> FrozenSet[str]:
        return self._groups

    def check(self, groups: Union[str, Iterable[str]]) -> None:
        """Warn about every name in ``groups`` the server does not know."""
        if isinstance(groups, str):
            groups = [groups]

        for group in groups:
            if group not in self._groups:
                self._logger.warning(f"Unknown access group: {group}")

    def __contains__(self, group: object) -> bool:
        return group in self._groups

    def __iter__(self) -> Iterator[str]:
        return iter(sorted(self._groups))

    def __len__(self) -> int:
        return len(self._groups)

    def __repr__(self) -> str:
        return f"AccessGroups({sorted(self._groups)!r})"

