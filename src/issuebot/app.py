"""HTTP surface: GitHub webhook receiver and the debug-log upload service."""

from __future__ import annotations

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse, PlainTextResponse, Response
from starlette.concurrency import run_in_threadpool

from .config import BotConfig
from .dispatch import ClientFactory, dispatch
from .errors import IssueBotError, classify_error, redact
from .events import WebhookEnvelope
from .logging import StructuredLogger, get_logger
from .logstore import FileLogStore, LogRejected


def create_app(
    config: BotConfig,
    *,
    client_factory: ClientFactory | None = None,
    log_store: FileLogStore | None = None,
    logger: StructuredLogger | None = None,
) -> FastAPI:
    logger = logger or get_logger()
    store = log_store or FileLogStore(config.log_directory, config.log_base_url)

    app = FastAPI(title="issuebot", docs_url=None, redoc_url=None)
    app.state.config = config
    app.state.log_store = store

    @app.get("/healthz")
    def healthz() -> dict[str, bool]:
        return {"ok": True}

    @app.post("/webhook")
    async def webhook(request: Request) -> JSONResponse:
        # Raw bytes only; nothing is decoded until the signature checks out.
        envelope = WebhookEnvelope(
            event_type=request.headers.get("X-GitHub-Event", ""),
            raw_body=await request.body(),
            signature=request.headers.get("X-Hub-Signature"),
            delivery_id=request.headers.get("X-GitHub-Delivery"),
        )
        try:
            result = await run_in_threadpool(
                dispatch, envelope, config, client_factory, logger=logger
            )
        except IssueBotError as exc:
            info = classify_error(exc)
            logger.log_error(
                "webhook delivery failed",
                error=str(exc),
                category=info.category,
                delivery=envelope.delivery_id,
                event=envelope.event_type,
            )
            return JSONResponse(
                {"ok": False, "error": redact(str(exc)), "category": info.category},
                status_code=int(exc.status),
            )
        logger.info(
            f"delivery {envelope.delivery_id or '-'} {result.event}: {result.status}",
            delivery=envelope.delivery_id,
            mutation_count=len(result.mutations),
        )
        return JSONResponse(result.as_dict())

    @app.post("/logs")
    async def upload_log(request: Request) -> PlainTextResponse:
        data = await request.body()
        try:
            url = await run_in_threadpool(store.store, data)
        except LogRejected as exc:
            return PlainTextResponse(str(exc), status_code=400)
        return PlainTextResponse(url + "\n")

    @app.get("/logs/{name}")
    def fetch_log(name: str) -> Response:
        data = store.load(name)
        if data is None:
            raise HTTPException(status_code=404, detail="log not found")
        return Response(content=data, media_type="application/octet-stream")

    return app


__all__ = ["create_app"]
