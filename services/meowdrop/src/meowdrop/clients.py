from __future__ import annotations

import httpx

from .codes import normalize_code
from .config import settings
from .errors import ShareNotFoundError


class ServiceUnavailable(RuntimeError):
    pass


def _client(base_url: str | None, transport: httpx.AsyncBaseTransport | None, timeout: float) -> httpx.AsyncClient:
    return httpx.AsyncClient(
        base_url=(base_url or settings.service_url).rstrip("/"),
        transport=transport,
        timeout=timeout,
    )


def _check(resp: httpx.Response) -> None:
    if resp.status_code == 404:
        raise ShareNotFoundError()
    try:
        resp.raise_for_status()
    except httpx.HTTPStatusError as e:
        raise RuntimeError(f"MeowDrop error {e.response.status_code}: {e.response.text}")


async def retrieve_share(code: str, base_url: str | None = None, transport=None) -> dict:
    try:
        async with _client(base_url, transport, 5.0) as client:
            resp = await client.get(f"/shares/{normalize_code(code)}")
    except (httpx.ConnectError, httpx.ReadTimeout) as e:
        raise ServiceUnavailable(f"MeowDrop unavailable: {e}")
    _check(resp)
    return resp.json()


async def download_share(code: str, base_url: str | None = None, transport=None) -> bytes:
    try:
        async with _client(base_url, transport, 30.0) as client:
            resp = await client.get(f"/shares/{normalize_code(code)}/download")
    except (httpx.ConnectError, httpx.ReadTimeout) as e:
        raise ServiceUnavailable(f"MeowDrop unavailable: {e}")
    _check(resp)
    return resp.content


async def consume_share(code: str, base_url: str | None = None, transport=None) -> int:
    try:
        async with _client(base_url, transport, 5.0) as client:
            resp = await client.post(f"/shares/{normalize_code(code)}/consume")
    except (httpx.ConnectError, httpx.ReadTimeout) as e:
        raise ServiceUnavailable(f"MeowDrop unavailable: {e}")
    _check(resp)
    return resp.json()["deleted"]


async def receive_share(code: str, base_url: str | None = None, transport=None) -> tuple[dict, bytes]:
    """Сценарий получателя: найти, скачать, удалить с сервера."""
    meta = await retrieve_share(code, base_url, transport)
    data = await download_share(code, base_url, transport)
    await consume_share(meta["share_code"], base_url, transport)
    return meta, data
