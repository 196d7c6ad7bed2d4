"""Modelos del dominio (Pydantic v2).

Por qué Pydantic en el dominio:
- El servidor y el session record son productores externos; validar en el
  borde convierte un body malformado en un único `SerializationError` en vez
  de un `KeyError` en medio de un comando.
- Los alias mantienen los nombres del wire (`startTime`, `otherName`) fuera
  del código Python.

Nota:
- Estos modelos describen *qué* se intercambia, no *cómo* se obtiene.
"""

from __future__ import annotations

from enum import Enum
from typing import Generic, TypeVar

from pydantic import BaseModel, Field
from pydantic.config import ConfigDict

READY_STATUS = "READY"

T = TypeVar("T")


class SessionRecord(BaseModel):
    """Handshake file written by the server process (`<channel>/PID`).

    `port` and `token` stay absent until the server has bound its socket.
    """

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    pid: int = Field(..., description="PID of the server process.")
    port: int | None = Field(default=None, description="Listening port, once assigned.")
    token: str | None = Field(default=None, description="Bearer token, once assigned.")
    start_time: int = Field(..., alias="startTime", description="Start time (epoch ms).")

    @property
    def is_populated(self) -> bool:
        return self.port is not None and self.token is not None


class Session(BaseModel):
    """Established binding to the running server for one command."""

    model_config = ConfigDict(frozen=True)

    address: str = Field(..., min_length=1)
    token: str = Field(..., min_length=1)

    @classmethod
    def from_record(cls, record: SessionRecord, host: str = "localhost") -> "Session":
        if not record.is_populated:
            raise ValueError("session record has no port/token yet")
        return cls(address=f"http://{host}:{record.port}", token=record.token or "")


class ServerStatus(str, Enum):
    STOPPED = "Stopped"
    STARTING = "Starting"
    LOADING = "Loading"
    RUNNING = "Running"


class ServerStatusReport(BaseModel):
    status: ServerStatus
    pid: int | None = None
    port: int | None = None
    start_time: int | None = None


class SessionMode(str, Enum):
    """How long the command needs the server.

    ONE_SHOT sends a single short lease; MAINTAINED keeps renewing it for the
    life of the command.
    """

    ONE_SHOT = "one-shot"
    MAINTAINED = "maintained"


# --- REST contracts --------------------------------------------------------


class ErrorResult(BaseModel):
    code: str
    message: str


class HealthResponse(BaseModel):
    model_config = ConfigDict(extra="ignore")

    status: str

    @property
    def ready(self) -> bool:
        return self.status == READY_STATUS


class ListResult(BaseModel, Generic[T]):
    total: int
    result: list[T] = Field(default_factory=list)


class IdRes(BaseModel):
    id: int


class IdWithWarning(BaseModel):
    id: int
    warnings: list[ErrorResult] = Field(default_factory=list)


class ImportImage(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    id: int
    file: str
    thumbnail_file: str | None = Field(default=None, alias="thumbnailFile")
    file_name: str | None = Field(default=None, alias="fileName")
    source_site: str | None = Field(default=None, alias="sourceSite")
    source_id: int | None = Field(default=None, alias="sourceId")
    source_part: int | None = Field(default=None, alias="sourcePart")
    tagme: list[str] = Field(default_factory=list)
    partition_time: str = Field(..., alias="partitionTime")
    order_time: str = Field(..., alias="orderTime")


class ImportSaveErrorItem(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    import_id: int = Field(..., alias="importId")
    file_not_ready: bool = Field(default=False, alias="fileNotReady")
    not_existed_collection_id: int | None = Field(default=None, alias="notExistedCollectionId")
    not_existed_clone_image_id: int | None = Field(default=None, alias="notExistedCloneImageId")
    not_existed_book_ids: list[int] | None = Field(default=None, alias="notExistedBookIds")
    not_existed_folder_ids: list[int] | None = Field(default=None, alias="notExistedFolderIds")

    def reasons(self) -> list[str]:
        out: list[str] = []
        if self.file_not_ready:
            out.append("File not ready.")
        if self.not_existed_clone_image_id is not None:
            out.append("Preference clone image not exist.")
        if self.not_existed_collection_id is not None:
            out.append("Preference collection not exist.")
        if self.not_existed_book_ids is not None:
            out.append("Preference book not exist.")
        if self.not_existed_folder_ids is not None:
            out.append("Preference folder not exist.")
        return out


class ImportSaveResult(BaseModel):
    total: int
    errors: list[ImportSaveErrorItem] = Field(default_factory=list)


class SourceDataItem(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    site: str = Field(..., alias="sourceSite")
    site_name: str = Field(default="", alias="sourceSiteName")
    source_id: int = Field(..., alias="sourceId")
    status: str = Field(default="NOT_EDITED")
    tag_count: int = Field(default=0, alias="tagCount")
    book_count: int = Field(default=0, alias="bookCount")
    relation_count: int = Field(default=0, alias="relationCount")

    @property
    def display_site(self) -> str:
        return self.site_name or self.site


class SourceTagForm(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    code: str
    name: str | None = None
    other_name: str | None = Field(default=None, serialization_alias="otherName")
    tag_type: str | None = Field(default=None, serialization_alias="type")


class SourceBookForm(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    code: str
    title: str | None = None
    other_title: str | None = Field(default=None, serialization_alias="otherTitle")


class SourceDataUpdateForm(BaseModel):
    title: str | None = None
    description: str | None = None
    tags: list[SourceTagForm] | None = None
    books: list[SourceBookForm] | None = None
    relations: list[int] | None = None
    status: str | None = None
    links: list[str] | None = None
    additional_info: dict[str, str] | None = Field(default=None, serialization_alias="additionalInfo")

    def to_body(self) -> dict[str, object]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


# --- Downloads -------------------------------------------------------------


class DownloadTag(BaseModel):
    code: str
    name: str | None = None
    other_name: str | None = None
    tag_type: str | None = None


class DownloadBook(BaseModel):
    code: str
    title: str | None = None
    other_title: str | None = None


class DownloadResult(BaseModel):
    """Normalized metadata extracted from one external item."""

    title: str | None = None
    description: str | None = None
    tags: list[DownloadTag] | None = None
    books: list[DownloadBook] | None = None
    relations: list[int] | None = None

    def to_update_form(self) -> SourceDataUpdateForm:
        return SourceDataUpdateForm(
            title=self.title,
            description=self.description,
            tags=(
                [
                    SourceTagForm(code=t.code, name=t.name, other_name=t.other_name, tag_type=t.tag_type)
                    for t in self.tags
                ]
                if self.tags is not None
                else None
            ),
            books=(
                [SourceBookForm(code=b.code, title=b.title, other_title=b.other_title) for b in self.books]
                if self.books is not None
                else None
            ),
            relations=list(self.relations) if self.relations is not None else None,
        )


class DownloadOutcome(BaseModel):
    result: DownloadResult
    retry_count: int = Field(default=0, ge=0)
    elapsed_ms: int = Field(default=0, ge=0)
