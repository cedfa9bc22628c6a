import logging
from contextlib import asynccontextmanager
from pathlib import Path
from urllib.parse import quote

from fastapi import Depends, FastAPI, File, Request, UploadFile
from fastapi.responses import JSONResponse, Response

from .codec import DEFAULT_MIME, read_upload
from .config import Settings, settings as default_settings
from .db import SessionLocal, init_db
from .errors import FileTooLargeError, MeowDropError, StoreUnreadableError, TransferNotFoundError
from .log import setup_logging
from .schemas import (
    ShareMeta,
    ShareRecord,
    ShareRecordOut,
    ShareUploadOut,
    TransferBoardOut,
    TransferOut,
    TransferStatus,
)
from .sharing import ShareService, ShareUpload
from .slots import Slots, SqlSlots
from .store import RecordStore
from .transfers import IncomingFile, Ticker, TransferBoard, TransferEntry
from .utils import format_bytes

logger = logging.getLogger(__name__)


def _attachment(filename: str) -> dict:
    return {"Content-Disposition": f"attachment; filename*=UTF-8''{quote(filename)}"}


def _share_meta(r: ShareRecord) -> ShareMeta:
    return ShareMeta(
        id=r.id,
        file_name=r.file_name,
        file_size=r.file_size,
        size_label=format_bytes(r.file_size),
        file_type=r.file_type,
        share_code=r.share_code,
        uploaded_at=r.uploaded_at,
        expires_at=r.expires_at,
    )


def _upload_out(u: ShareUpload) -> ShareUploadOut:
    return ShareUploadOut(
        id=u.id,
        file_name=u.file_name,
        file_size=u.file_size,
        status=u.status,
        share_code=u.share_code,
        expires_at=u.expires_at,
        error=u.error,
    )


def _transfer_out(e: TransferEntry) -> TransferOut:
    return TransferOut(
        id=e.id,
        file_name=e.file.name,
        file_size=e.file.size,
        size_label=format_bytes(e.file.size),
        content_type=e.file.content_type,
        status=e.status,
        progress=round(e.progress, 2),
        created_at=e.created_at,
    )


def get_share_service(request: Request) -> ShareService:
    return request.app.state.share_service


def get_board(request: Request) -> TransferBoard:
    return request.app.state.board


def create_app(cfg: Settings | None = None, slots: Slots | None = None, clock=None) -> FastAPI:
    cfg = cfg or default_settings
    uses_db = slots is None
    if slots is None:
        slots = SqlSlots(SessionLocal, quota=cfg.storage_quota_chars)

    store = RecordStore(slots, key=cfg.storage_slot, clock=clock, strict=cfg.strict_store)
    board = TransferBoard(cfg.max_transfer_bytes, start_delay=cfg.transfer_start_delay_ms / 1000, clock=clock)
    ticker = Ticker(board, interval=cfg.transfer_tick_ms / 1000)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        setup_logging(cfg.log_level)
        if uses_db:
            Path(cfg.data_dir).mkdir(parents=True, exist_ok=True)
            init_db()
        # истёкшие записи чистим при старте, дальше только по ходу запросов
        try:
            evicted = store.cleanup()
            logger.info(f"MeowDrop started, slot '{cfg.storage_slot}', {evicted} expired record(s) evicted")
        except StoreUnreadableError as e:
            # сервис поднимаем, ошибка вернётся на каждом запросе к кодам
            logger.error(f"MeowDrop started with unreadable slot '{cfg.storage_slot}': {e.detail}")
        ticker.start()
        yield
        await ticker.stop()

    app = FastAPI(title="MeowDrop Share Service", version="1.0.0", lifespan=lifespan)
    app.state.share_service = ShareService(store, cfg.max_share_bytes, clock=clock)
    app.state.board = board
    app.state.settings = cfg

    @app.exception_handler(MeowDropError)
    async def meowdrop_error_handler(request: Request, exc: MeowDropError):
        logger.warning(f"{type(exc).__name__} on {request.method} {request.url.path}: {exc.detail}")
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.detail, "error": type(exc).__name__},
        )

    @app.get("/health")
    def health():
        return {"status": "ok"}

    @app.post("/shares", response_model=ShareUploadOut)
    async def upload_share(file: UploadFile = File(...), service: ShareService = Depends(get_share_service)):
        name = file.filename or "uploaded.bin"
        content_type = file.content_type or DEFAULT_MIME
        data = await read_upload(file, limit=service.max_bytes)
        upload = service.upload(name, data, content_type)
        if upload.status == TransferStatus.ERROR:
            return JSONResponse(status_code=507, content=_upload_out(upload).model_dump(mode="json"))
        return _upload_out(upload)

    @app.get("/shares/{code}", response_model=ShareMeta)
    def get_share(code: str, service: ShareService = Depends(get_share_service)):
        return _share_meta(service.retrieve(code))

    @app.get("/shares/{code}/download")
    def download_share(code: str, service: ShareService = Depends(get_share_service)):
        record, data = service.download(code)
        return Response(content=data, media_type=record.file_type, headers=_attachment(record.file_name))

    @app.post("/shares/{code}/consume")
    def consume_share(code: str, service: ShareService = Depends(get_share_service)):
        return {"deleted": service.consume(code)}

    @app.post("/shares/{code}/claim", response_model=ShareRecordOut)
    def claim_share(code: str, service: ShareService = Depends(get_share_service)):
        r = service.claim(code)
        return ShareRecordOut(**_share_meta(r).model_dump(), data=r.data)

    @app.post("/transfers", response_model=list[TransferOut])
    async def add_transfers(files: list[UploadFile] = File(...), board: TransferBoard = Depends(get_board)):
        incoming = []
        for f in files:
            name = f.filename or "uploaded.bin"
            content_type = f.content_type or DEFAULT_MIME
            if f.size is not None and f.size > board.max_bytes:
                # размер известен заранее: не читаем файл в память
                await f.close()
                incoming.append(IncomingFile(name=name, data=b"", content_type=content_type, size=f.size))
                continue
            try:
                data = await read_upload(f, limit=board.max_bytes)
                incoming.append(IncomingFile(name=name, data=data, content_type=content_type))
            except FileTooLargeError:
                # в список попадает сразу со статусом error
                size = f.size if f.size is not None else board.max_bytes + 1
                incoming.append(IncomingFile(name=name, data=b"", content_type=content_type, size=size))
        return [_transfer_out(e) for e in board.add(incoming)]

    @app.get("/transfers", response_model=TransferBoardOut)
    def list_transfers(board: TransferBoard = Depends(get_board)):
        entries = board.entries()
        total = sum(e.file.size for e in entries)
        return TransferBoardOut(
            transfers=[_transfer_out(e) for e in entries],
            total_size=total,
            total_size_label=format_bytes(total),
            completed=sum(1 for e in entries if e.status == TransferStatus.COMPLETED),
        )

    @app.get("/transfers/archive")
    def download_archive(board: TransferBoard = Depends(get_board)):
        name, content = board.bundle()
        return Response(content=content, media_type="application/zip", headers=_attachment(name))

    @app.delete("/transfers/{transfer_id}")
    def delete_transfer(transfer_id: str, board: TransferBoard = Depends(get_board)):
        if not board.remove(transfer_id):
            raise TransferNotFoundError()
        return {"deleted": transfer_id}

    @app.delete("/transfers")
    def clear_transfers(board: TransferBoard = Depends(get_board)):
        board.clear()
        return {"status": "ok"}

    return app


app = create_app()
