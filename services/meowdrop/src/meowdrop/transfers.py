import asyncio
import datetime as dt
import io
import logging
import threading
import zipfile
from dataclasses import dataclass, field
from typing import Callable, Iterable

from .codec import DEFAULT_MIME
from .codes import generate_id
from .errors import BundleError, NothingToBundleError
from .schemas import TransferStatus
from .store import utcnow

logger = logging.getLogger(__name__)

# имитация "LAN передачи": ничего не отправляется, прогресс считается по времени
MIN_DURATION_MS = 500
MAX_DURATION_MS = 2000


def simulated_duration_ms(size: int) -> float:
    # "скорость сети": ~1 МБ в мс, но не быстрее 0.5с и не дольше 2с
    return min(max(size / 1_000_000, MIN_DURATION_MS), MAX_DURATION_MS)


@dataclass
class IncomingFile:
    name: str
    data: bytes
    content_type: str = DEFAULT_MIME
    size: int | None = None

    def __post_init__(self):
        if self.size is None:
            self.size = len(self.data)


@dataclass
class TransferEntry:
    id: str
    file: IncomingFile
    created_at: dt.datetime
    status: TransferStatus = TransferStatus.PENDING
    progress: float = 0.0
    started_at: dt.datetime | None = None
    duration_ms: float = field(default=MIN_DURATION_MS)


class TransferBoard:
    def __init__(
        self,
        max_bytes: int,
        start_delay: float = 0.3,
        clock: Callable[[], dt.datetime] | None = None,
    ):
        self.max_bytes = max_bytes
        self.start_delay = dt.timedelta(seconds=start_delay)
        self.clock = clock or utcnow
        self._entries: dict[str, TransferEntry] = {}
        self._lock = threading.Lock()

    def add(self, files: Iterable[IncomingFile]) -> list[TransferEntry]:
        now = self.clock()
        added = []
        with self._lock:
            for f in files:
                entry = TransferEntry(
                    id=generate_id(),
                    file=f,
                    created_at=now,
                    duration_ms=simulated_duration_ms(f.size),
                )
                if f.size > self.max_bytes:
                    logger.warning(f"Transfer {f.name} rejected: {f.size} bytes over {self.max_bytes}")
                    entry.status = TransferStatus.ERROR
                self._entries[entry.id] = entry
                added.append(entry)
        return added

    def advance(self, entry_id: str, now: dt.datetime | None = None) -> TransferEntry | None:
        """Один шаг для одной записи; удалённая запись -> None, ничего не меняем."""
        now = now or self.clock()
        with self._lock:
            entry = self._entries.get(entry_id)
            if entry is None:
                return None
            self._step(entry, now)
            return entry

    def _step(self, entry: TransferEntry, now: dt.datetime) -> None:
        if entry.status == TransferStatus.PENDING:
            if now - entry.created_at < self.start_delay:
                return
            entry.status = TransferStatus.UPLOADING
            entry.started_at = entry.created_at + self.start_delay
        if entry.status != TransferStatus.UPLOADING:
            return
        elapsed_ms = (now - entry.started_at).total_seconds() * 1000
        entry.progress = min(elapsed_ms / entry.duration_ms * 100, 100.0)
        if entry.progress >= 100:
            entry.status = TransferStatus.COMPLETED

    def tick(self, now: dt.datetime | None = None) -> None:
        now = now or self.clock()
        with self._lock:
            for entry in self._entries.values():
                self._step(entry, now)

    def get(self, entry_id: str) -> TransferEntry | None:
        with self._lock:
            return self._entries.get(entry_id)

    def entries(self) -> list[TransferEntry]:
        with self._lock:
            return list(self._entries.values())

    def remove(self, entry_id: str) -> bool:
        with self._lock:
            return self._entries.pop(entry_id, None) is not None

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def total_size(self) -> int:
        return sum(e.file.size for e in self.entries())

    def completed(self) -> list[TransferEntry]:
        return [e for e in self.entries() if e.status == TransferStatus.COMPLETED]

    def bundle(self, today: dt.date | None = None) -> tuple[str, bytes]:
        done = self.completed()
        if not done:
            raise NothingToBundleError()
        today = today or self.clock().date()
        name = f"MeowDrop_Transfer_{today.isoformat()}.zip"

        # одно имя = один файл в архиве, побеждает последний
        by_name = {}
        for entry in done:
            by_name[entry.file.name] = entry.file.data

        buf = io.BytesIO()
        try:
            with zipfile.ZipFile(buf, "w", zipfile.ZIP_DEFLATED) as zf:
                for file_name, data in by_name.items():
                    zf.writestr(file_name, data)
        except (OSError, MemoryError, ValueError, zipfile.LargeZipFile) as e:
            logger.error(f"Error zipping {len(done)} file(s): {e}")
            raise BundleError()
        return name, buf.getvalue()


class Ticker:
    """Фоновая задача: board.tick() каждые interval секунд."""

    def __init__(self, board: TransferBoard, interval: float = 0.05):
        self.board = board
        self.interval = interval
        self._task: asyncio.Task | None = None

    async def _run(self) -> None:
        while True:
            self.board.tick()
            await asyncio.sleep(self.interval)

    def start(self) -> None:
        if self._task is None:
            self._task = asyncio.get_running_loop().create_task(self._run())

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
