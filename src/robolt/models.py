"""Value objects exchanged with the server.

Documents are kept as plain decoded mappings since their shape is defined by
the server's models. Stored files get a pydantic model because the SDK itself
reads their ``path``, ``thumbnailPath`` and ``name`` keys.
"""

import mimetypes
from dataclasses import dataclass
from datetime import datetime
from os import PathLike
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, TypedDict, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

UNKNOWN_FILE_NAME = "unknown"

Document = Dict[str, Any]


class RoboFile(BaseModel):
    """A file stored by the server."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    id: str = Field(..., alias="_id", description="Document identifier")
    name: str = Field(..., description="Original file name")
    path: str = Field(..., description="Storage key of the file")
    size: int = Field(0, description="Size in bytes")
    mime_type: Optional[str] = Field(
        None,
        validation_alias=AliasChoices("type", "mimeType", "mime_type"),
        serialization_alias="type",
        description="MIME type",
    )
    extension: str = Field("", description="File extension")
    is_image: bool = Field(
        False,
        validation_alias=AliasChoices("isImage", "is_image"),
        serialization_alias="isImage",
    )
    thumbnail_path: Optional[str] = Field(
        None,
        validation_alias=AliasChoices("thumbnailPath", "thumbnail_path"),
        serialization_alias="thumbnailPath",
        description="Storage key of the generated thumbnail",
    )
    upload_date: Optional[datetime] = Field(
        None,
        validation_alias=AliasChoices("uploadDate", "upload_date"),
        serialization_alias="uploadDate",
    )


FileArgument = Union[RoboFile, Mapping[str, Any], str]


@dataclass(frozen=True)
class FileReference:
    """A file argument resolved into the identifiers the routes need.

    Built once per operation from either a stored file (model or decoded
    mapping) or a bare string. A bare string stands for every identifier at
    once and carries no file name.
    """

    id: str
    path: str
    thumbnail_path: Optional[str]
    name: Optional[str]

    @classmethod
    def resolve(cls, file: FileArgument) -> "FileReference":
        if isinstance(file, str):
            return cls(id=file, path=file, thumbnail_path=file, name=None)
        if isinstance(file, RoboFile):
            return cls(
                id=file.id,
                path=file.path,
                thumbnail_path=file.thumbnail_path,
                name=file.name,
            )
        return cls(
            id=file.get("_id"),
            path=file.get("path"),
            thumbnail_path=file.get("thumbnailPath"),
            name=file.get("name"),
        )

    @property
    def display_name(self) -> str:
        return self.name or UNKNOWN_FILE_NAME


@dataclass
class LocalFile:
    """File content held in memory on the client side."""

    name: str
    content: bytes
    mime_type: Optional[str] = None

    @property
    def size(self) -> int:
        return len(self.content)

    @classmethod
    def from_path(cls, path: Union[str, PathLike]) -> "LocalFile":
        path = Path(path)
        mime_type, _ = mimetypes.guess_type(path.name)
        return cls(name=path.name, content=path.read_bytes(), mime_type=mime_type)


class SchemaField(TypedDict, total=False):
    """One node of a schema field tree as decoded from the server."""

    name: str
    key: str
    type: str
    enum: List[str]
    required: bool
    isArray: bool
    marked: bool
    hidden: bool
    default: Any
    props: Dict[str, Any]
    ref: str
    subfields: List["SchemaField"]
