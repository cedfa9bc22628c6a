class MeowDropError(Exception):
    """Базовое исключение сервиса."""

    status_code = 500
    default_detail = "Internal error"

    def __init__(self, detail: str | None = None):
        self.detail = detail or self.default_detail
        super().__init__(self.detail)


class FileTooLargeError(MeowDropError):
    status_code = 413
    default_detail = "File is too large"


class StorageQuotaExceededError(MeowDropError):
    status_code = 507
    default_detail = "Storage quota exceeded"


class StoreUnreadableError(MeowDropError):
    default_detail = "Stored share records are unreadable"


class ShareNotFoundError(MeowDropError):
    # одна формулировка для "нет", "истёк" и "уже скачан"
    status_code = 404
    default_detail = "File not found, expired, or already downloaded."


class InvalidCodeError(MeowDropError):
    status_code = 422
    default_detail = "Please enter a valid 7-character code (e.g., 123-ABC)"


class CodecError(MeowDropError):
    status_code = 422
    default_detail = "Malformed encoded payload"


class PayloadReadError(MeowDropError):
    status_code = 400
    default_detail = "Failed to read file"


class NothingToBundleError(MeowDropError):
    status_code = 409
    default_detail = "No completed transfers to bundle"


class BundleError(MeowDropError):
    default_detail = "Could not zip files. They might be too large for memory."


class TransferNotFoundError(MeowDropError):
    status_code = 404
    default_detail = "Transfer not found"
