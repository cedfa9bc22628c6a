import datetime as dt
from enum import Enum

from pydantic import AwareDatetime, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class TransferStatus(str, Enum):
    PENDING = "pending"
    UPLOADING = "uploading"
    COMPLETED = "completed"
    ERROR = "error"


class ShareRecord(BaseModel):
    """Запись в общей коллекции; ключи в JSON в camelCase."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str
    file_name: str
    file_size: int
    file_type: str
    share_code: str
    uploaded_at: AwareDatetime
    expires_at: AwareDatetime
    data: str


class ShareMeta(BaseModel):
    id: str
    file_name: str
    file_size: int
    size_label: str
    file_type: str
    share_code: str
    uploaded_at: dt.datetime
    expires_at: dt.datetime


class ShareRecordOut(ShareMeta):
    data: str


class ShareUploadOut(BaseModel):
    id: str
    file_name: str
    file_size: int
    status: TransferStatus
    share_code: str | None = None
    expires_at: dt.datetime | None = None
    error: str | None = None


class TransferOut(BaseModel):
    id: str
    file_name: str
    file_size: int
    size_label: str
    content_type: str
    status: TransferStatus
    progress: float
    created_at: dt.datetime


class TransferBoardOut(BaseModel):
    transfers: list[TransferOut] = Field(default_factory=list)
    total_size: int
    total_size_label: str
    completed: int
