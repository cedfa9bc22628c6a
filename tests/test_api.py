import io
import zipfile

from fastapi.testclient import TestClient
from starlette.datastructures import UploadFile as StarletteUploadFile

from meowdrop.codes import CODE_PATTERN
from meowdrop.main import create_app
from meowdrop.slots import MemorySlots


def upload(client, name="note.txt", data=b"meow meow", content_type="text/plain"):
    return client.post("/shares", files={"file": (name, data, content_type)})


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


def test_share_flow(client):
    resp = upload(client)
    assert resp.status_code == 200
    body = resp.json()
    assert body["status"] == "completed"
    code = body["share_code"]
    assert CODE_PATTERN.match(code)

    meta = client.get(f"/shares/{code.lower()}").json()
    assert meta["file_name"] == "note.txt"
    assert meta["size_label"] == "9 Bytes"
    assert "data" not in meta

    dl = client.get(f"/shares/{code}/download")
    assert dl.status_code == 200
    assert dl.content == b"meow meow"
    assert "note.txt" in dl.headers["content-disposition"]

    assert client.post(f"/shares/{code}/consume").json() == {"deleted": 1}
    miss = client.get(f"/shares/{code}")
    assert miss.status_code == 404
    assert miss.json()["error"] == "ShareNotFoundError"


def test_claim(client):
    code = upload(client).json()["share_code"]
    body = client.post(f"/shares/{code}/claim").json()
    assert body["data"].startswith("data:text/plain;base64,")
    assert client.post(f"/shares/{code}/claim").status_code == 404


def test_expired_share(client, clock):
    code = upload(client).json()["share_code"]
    clock.advance(hours=6)
    assert client.get(f"/shares/{code}").status_code == 404


def test_oversize_share(client):
    resp = upload(client, data=b"x" * 2048)
    assert resp.status_code == 413
    assert resp.json()["error"] == "FileTooLargeError"


def test_quota_exceeded(client):
    # 1000 байт -> ~1.4K символов base64; десять таких не влезут в 10K
    statuses = [upload(client, data=b"x" * 1000).status_code for _ in range(10)]
    assert statuses[0] == 200
    assert statuses[-1] == 507


def test_short_code(client):
    resp = client.get("/shares/12")
    assert resp.status_code == 422
    assert resp.json()["error"] == "InvalidCodeError"


def test_transfers(client, clock):
    resp = client.post(
        "/transfers",
        files=[("files", ("a.txt", b"aaa", "text/plain")), ("files", ("b.bin", b"bb", "application/octet-stream"))],
    )
    assert resp.status_code == 200
    entries = resp.json()
    assert [e["status"] for e in entries] == ["pending", "pending"]

    assert client.get("/transfers/archive").status_code == 409

    clock.advance(seconds=3)
    client.app.state.board.tick()
    board = client.get("/transfers").json()
    assert board["completed"] == 2
    assert board["total_size"] == 5
    assert board["total_size_label"] == "5 Bytes"

    archive = client.get("/transfers/archive")
    assert archive.status_code == 200
    assert archive.headers["content-type"] == "application/zip"
    with zipfile.ZipFile(io.BytesIO(archive.content)) as zf:
        assert sorted(zf.namelist()) == ["a.txt", "b.bin"]

    assert client.delete(f"/transfers/{entries[0]['id']}").status_code == 200
    assert client.delete(f"/transfers/{entries[0]['id']}").status_code == 404
    assert len(client.get("/transfers").json()["transfers"]) == 1

    client.delete("/transfers")
    assert client.get("/transfers").json()["transfers"] == []


def test_oversize_transfer_is_not_read(settings, clock, monkeypatch):
    async def must_not_read(*args, **kwargs):
        raise AssertionError("oversize file was read")

    cfg = settings.model_copy(update={"max_transfer_bytes": 1024})
    app = create_app(cfg, slots=MemorySlots(), clock=clock)
    monkeypatch.setattr("meowdrop.main.read_upload", must_not_read)
    with TestClient(app) as c:
        resp = c.post("/transfers", files=[("files", ("huge.iso", b"x" * 2048, "application/octet-stream"))])
    assert resp.status_code == 200
    [entry] = resp.json()
    assert entry["status"] == "error"
    assert entry["file_size"] == 2048


def test_strict_store_unreadable_is_500(settings, clock):
    cfg = settings.model_copy(update={"strict_store": True})
    slots = MemorySlots()
    slots.set(cfg.storage_slot, "{broken")
    with TestClient(create_app(cfg, slots=slots, clock=clock)) as c:
        resp = c.get("/shares/123-ABC")
    assert resp.status_code == 500
    assert resp.json()["error"] == "StoreUnreadableError"


def test_read_error_is_400(client, monkeypatch):
    async def broken_read(self, size=-1):
        raise OSError("read interrupted")

    monkeypatch.setattr(StarletteUploadFile, "read", broken_read)
    resp = upload(client)
    assert resp.status_code == 400
    assert resp.json()["error"] == "PayloadReadError"
