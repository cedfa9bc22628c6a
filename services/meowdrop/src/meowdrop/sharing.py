import datetime as dt
import logging
import random
from dataclasses import dataclass
from typing import Callable

from . import codec
from .codes import generate_id, generate_share_code, looks_like_code, normalize_code
from .errors import FileTooLargeError, InvalidCodeError, ShareNotFoundError, StorageQuotaExceededError
from .schemas import ShareRecord, TransferStatus
from .store import SHARE_TTL, RecordStore, utcnow

logger = logging.getLogger(__name__)


@dataclass
class ShareUpload:
    id: str
    file_name: str
    file_size: int
    status: TransferStatus = TransferStatus.PENDING
    share_code: str | None = None
    expires_at: dt.datetime | None = None
    error: str | None = None
    record: ShareRecord | None = None


class ShareService:
    """Отправка файла по коду и приём по коду.

    retrieve() и consume() это два независимых цикла чтения-записи:
    между ними запись можно получить сколько угодно раз. Для строгой
    одноразовости есть claim().
    """

    def __init__(
        self,
        store: RecordStore,
        max_bytes: int,
        clock: Callable[[], dt.datetime] | None = None,
        rng: random.Random | None = None,
    ):
        self.store = store
        self.max_bytes = max_bytes
        self.clock = clock or store.clock or utcnow
        self.rng = rng

    def upload(self, file_name: str, data: bytes, file_type: str | None = None) -> ShareUpload:
        if len(data) > self.max_bytes:
            raise FileTooLargeError(f"{file_name} is {len(data)} bytes, limit is {self.max_bytes}")

        upload = ShareUpload(id=generate_id(self.rng), file_name=file_name, file_size=len(data))
        upload.status = TransferStatus.UPLOADING

        uploaded_at = self.clock()
        record = ShareRecord(
            id=upload.id,
            file_name=file_name,
            file_size=len(data),
            file_type=file_type or codec.DEFAULT_MIME,
            share_code=generate_share_code(self.rng),
            uploaded_at=uploaded_at,
            expires_at=uploaded_at + SHARE_TTL,
            data=codec.encode(data, file_type),
        )
        try:
            self.store.put(record)
        except StorageQuotaExceededError as e:
            logger.warning(f"Share upload {upload.id} ({file_name}) failed: {e.detail}")
            upload.status = TransferStatus.ERROR
            upload.error = e.detail
            return upload

        upload.status = TransferStatus.COMPLETED
        upload.share_code = record.share_code
        upload.expires_at = record.expires_at
        upload.record = record
        return upload

    def _checked(self, code: str) -> str:
        if not looks_like_code(code):
            raise InvalidCodeError()
        return normalize_code(code)

    def retrieve(self, code: str) -> ShareRecord:
        record = self.store.find_by_code(self._checked(code))
        if record is None:
            raise ShareNotFoundError()
        return record

    def download(self, code: str) -> tuple[ShareRecord, bytes]:
        record = self.retrieve(code)
        return record, codec.decode(record.data)

    def consume(self, code: str) -> int:
        return self.store.delete_by_code(self._checked(code))

    def claim(self, code: str) -> ShareRecord:
        record = self.store.claim(self._checked(code))
        if record is None:
            raise ShareNotFoundError()
        return record
