from __future__ import annotations

import json
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

import structlog
from fastapi import APIRouter, Depends, FastAPI, Request
from fastapi.responses import JSONResponse

from src.config.settings import get_settings
from src.gateway.auth import require_bearer_token
from src.gateway.dispatch import CallResult, LogicalCall, dispatch_call, error_result
from src.infra.errors import GatewayError, LedgerError
from src.infra.logging import setup_logging
from src.ledger.registry import CoordinatorRegistry, build_registry
from src.store.database import create_db_engine, ensure_schema, make_session_factory
from src.store.memory import InMemoryStore
from src.store.postgres import PostgresStore

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan: open the durable store and hydrate coordinators."""
    settings = get_settings()
    setup_logging(json_output=settings.gateway.log_json, log_level=settings.gateway.log_level)

    if not settings.gateway.api_token:
        raise RuntimeError("GATEWAY_API_TOKEN is not set; refusing to start without auth.")

    engine = None
    if settings.store.backend == "postgres":
        # DB is mandatory for the postgres backend; startup fails if DB/schema unavailable.
        engine = await create_db_engine(settings.database)
        await ensure_schema(engine, settings.database.schema_)
        store = PostgresStore(make_session_factory(engine))
        logger.info("db_connected")
    else:
        store = InMemoryStore()
        logger.warning("memory_store_in_use", msg="records will not survive a restart")

    registry = build_registry(store)
    # Hydrate before serving so the first request sees persisted state.
    counts = await registry.hydrate_all()

    app.state.registry = registry
    app.state.api_token = settings.gateway.api_token
    logger.info(
        "gateway_started",
        host=settings.gateway.host,
        port=settings.gateway.port,
        store=settings.store.backend,
        records=counts,
    )

    yield

    if engine is not None:
        await engine.dispose()
        logger.info("db_engine_disposed")


app = FastAPI(title="Build Ledger Gateway", version="0.1.0", lifespan=lifespan)


@app.exception_handler(LedgerError)
async def _ledger_error_handler(request: Request, exc: LedgerError) -> JSONResponse:
    return _to_response(error_result(exc))


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok"}


def _to_response(result: CallResult) -> JSONResponse:
    return JSONResponse(status_code=result.status_code, content=result.body)


async def _json_body(request: Request) -> Any:
    raw = await request.body()
    if not raw:
        return {}
    try:
        return json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise GatewayError(f"Invalid JSON: {e}", code="PARSE_ERROR") from e


async def _relay(request: Request, kind: str, call: LogicalCall, params: Any = None) -> JSONResponse:
    registry: CoordinatorRegistry = request.app.state.registry
    result = await dispatch_call(registry.get(kind), call, params)
    return _to_response(result)


def _kind_router(kind: str, plural: str) -> APIRouter:
    """Routes for one entity kind: start, complete, list, get."""
    router = APIRouter(prefix=f"/api/{plural}", tags=[plural])

    @router.post("/start")
    async def start(request: Request) -> JSONResponse:
        return await _relay(request, kind, LogicalCall.start, await _json_body(request))

    @router.post("/complete")
    async def complete(request: Request) -> JSONResponse:
        return await _relay(request, kind, LogicalCall.complete, await _json_body(request))

    @router.get("")
    async def list_records(request: Request) -> JSONResponse:
        return await _relay(request, kind, LogicalCall.list)

    @router.get("/{record_id}")
    async def get_record(request: Request, record_id: str) -> JSONResponse:
        return await _relay(request, kind, LogicalCall.get, {"id": record_id})

    return router


_api = APIRouter(dependencies=[Depends(require_bearer_token)])
_api.include_router(_kind_router("build", "builds"))
_api.include_router(_kind_router("deployment", "deployments"))
app.include_router(_api)
