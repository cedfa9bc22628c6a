import base64
import binascii
from typing import BinaryIO

from fastapi import UploadFile

from .errors import CodecError, FileTooLargeError, PayloadReadError

CHUNK_SIZE = 1024 * 1024  # 1MB
DEFAULT_MIME = "application/octet-stream"


def encode(data: bytes, mime_type: str | None = None) -> str:
    """bytes -> data URI (как FileReader.readAsDataURL)."""
    payload = base64.b64encode(data).decode("ascii")
    return f"data:{mime_type or DEFAULT_MIME};base64,{payload}"


def decode(text: str) -> bytes:
    if text.startswith("data:"):
        header, sep, payload = text.partition(",")
        if not sep or not header.endswith(";base64"):
            raise CodecError("Not a base64 data URI")
    else:
        payload = text
    try:
        return base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as e:
        raise CodecError(f"Malformed base64 payload: {e}")


def mime_of(text: str) -> str:
    if text.startswith("data:"):
        header = text[5:].partition(",")[0]
        mime = header.removesuffix(";base64")
        if mime:
            return mime
    return DEFAULT_MIME


def _check_limit(size: int, limit: int | None) -> None:
    if limit is not None and size > limit:
        raise FileTooLargeError(f"File exceeds the {limit} byte limit")


def read_payload(stream: BinaryIO, limit: int | None = None) -> bytes:
    """Прочитать поток целиком. Ошибка чтения -> PayloadReadError."""
    chunks = []
    size = 0
    try:
        while True:
            chunk = stream.read(CHUNK_SIZE)
            if not chunk:
                break
            size += len(chunk)
            _check_limit(size, limit)
            chunks.append(chunk)
    except OSError as e:
        raise PayloadReadError(f"Failed to read file: {e}")
    return b"".join(chunks)


async def read_upload(upload_file: UploadFile, limit: int | None = None) -> bytes:
    chunks = []
    size = 0
    try:
        while True:
            chunk = await upload_file.read(CHUNK_SIZE)
            if not chunk:
                break
            size += len(chunk)
            _check_limit(size, limit)
            chunks.append(chunk)
    except OSError as e:
        raise PayloadReadError(f"Failed to read file: {e}")
    finally:
        await upload_file.close()
    return b"".join(chunks)
