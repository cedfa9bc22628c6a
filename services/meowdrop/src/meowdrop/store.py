import datetime as dt
import logging
import threading
from typing import Callable

from pydantic import TypeAdapter, ValidationError

from .codes import normalize_code
from .errors import StoreUnreadableError
from .schemas import ShareRecord
from .slots import Slots

logger = logging.getLogger(__name__)

SHARE_TTL = dt.timedelta(hours=6)
DEFAULT_SLOT = "meowdrop_files"

# вся коллекция лежит одним JSON-массивом в одной ячейке: любая запись = прочитать всё, изменить, записать всё.
# RLock делает этот цикл атомарным внутри процесса, между процессами гонка остаётся.
_records_adapter = TypeAdapter(list[ShareRecord])


def utcnow() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


class RecordStore:
    def __init__(
        self,
        slots: Slots,
        key: str = DEFAULT_SLOT,
        clock: Callable[[], dt.datetime] | None = None,
        strict: bool = False,
    ):
        self.slots = slots
        self.key = key
        self.clock = clock or utcnow
        self.strict = strict
        self._lock = threading.RLock()

    def _load(self) -> list[ShareRecord]:
        raw = self.slots.get(self.key)
        if not raw:
            return []
        try:
            return _records_adapter.validate_json(raw)
        except ValidationError as e:
            if self.strict:
                raise StoreUnreadableError(f"Slot '{self.key}' is unreadable: {e}")
            # как в демо: битый блоб = пустая коллекция, старые записи теряются
            logger.warning(f"Slot '{self.key}' is unreadable, treating it as empty: {e}")
            return []

    def _save(self, records: list[ShareRecord]) -> None:
        self.slots.set(self.key, _records_adapter.dump_json(records, by_alias=True).decode("utf-8"))

    def _evict_expired(self, records: list[ShareRecord]) -> list[ShareRecord]:
        now = self.clock()
        live = [r for r in records if r.expires_at > now]
        if len(live) != len(records):
            self._save(live)
            logger.info(f"Evicted {len(records) - len(live)} expired share record(s)")
        return live

    def put(self, record: ShareRecord) -> None:
        with self._lock:
            records = self._load()
            records.append(record)
            self._save(records)
        logger.info(f"Stored share record {record.id} under code {record.share_code}")

    def find_by_code(self, code: str) -> ShareRecord | None:
        code = normalize_code(code)
        with self._lock:
            records = self._evict_expired(self._load())
            return next((r for r in records if r.share_code == code), None)

    def delete_by_code(self, code: str) -> int:
        code = normalize_code(code)
        with self._lock:
            records = self._load()
            kept = [r for r in records if r.share_code != code]
            removed = len(records) - len(kept)
            self._save(kept)
        if removed:
            logger.info(f"Deleted {removed} share record(s) with code {code}")
        return removed

    def claim(self, code: str) -> ShareRecord | None:
        """Найти и сразу удалить все записи с кодом за один цикл."""
        code = normalize_code(code)
        with self._lock:
            records = self._evict_expired(self._load())
            found = next((r for r in records if r.share_code == code), None)
            if found is None:
                return None
            self._save([r for r in records if r.share_code != code])
        logger.info(f"Claimed share record {found.id} with code {code}")
        return found

    def cleanup(self) -> int:
        with self._lock:
            records = self._load()
            return len(records) - len(self._evict_expired(records))

    def all(self) -> list[ShareRecord]:
        with self._lock:
            return self._evict_expired(self._load())
