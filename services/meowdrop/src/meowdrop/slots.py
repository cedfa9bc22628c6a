from sqlalchemy.orm import sessionmaker

from .errors import StorageQuotaExceededError
from .models import StorageSlot


# аналог localStorage: одна ячейка = одна строка; запись сверх квоты не меняет старое значение
class Slots:
    def __init__(self, quota: int | None = None):
        self.quota = quota

    def _check_quota(self, key: str, value: str) -> None:
        if self.quota is not None and len(value) > self.quota:
            raise StorageQuotaExceededError(
                f"Setting '{key}' needs {len(value)} chars, quota is {self.quota}"
            )

    def get(self, key: str) -> str | None:
        raise NotImplementedError

    def set(self, key: str, value: str) -> None:
        raise NotImplementedError

    def remove(self, key: str) -> None:
        raise NotImplementedError


class MemorySlots(Slots):
    def __init__(self, quota: int | None = None):
        super().__init__(quota)
        self._data: dict[str, str] = {}

    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._check_quota(key, value)
        self._data[key] = value

    def remove(self, key: str) -> None:
        self._data.pop(key, None)


class SqlSlots(Slots):
    def __init__(self, session_factory: sessionmaker, quota: int | None = None):
        super().__init__(quota)
        self.session_factory = session_factory

    def get(self, key: str) -> str | None:
        with self.session_factory() as db:
            row = db.get(StorageSlot, key)
            return row.value if row else None

    def set(self, key: str, value: str) -> None:
        self._check_quota(key, value)
        with self.session_factory() as db:
            row = db.get(StorageSlot, key)
            if row is None:
                db.add(StorageSlot(key=key, value=value))
            else:
                row.value = value
            db.commit()

    def remove(self, key: str) -> None:
        with self.session_factory() as db:
            row = db.get(StorageSlot, key)
            if row is not None:
                db.delete(row)
                db.commit()
