"""Core dispatch: logical call → coordinator operation → explicit result value.

Transport-neutral. The HTTP routes in app.py only parse the request and
relay the CallResult; any other channel can reuse dispatch_call directly.
Coordinator errors are recovered here and never escape as exceptions.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import Any, TypeVar

import structlog
from pydantic import BaseModel, ValidationError

from src.gateway.protocol import (
    CompleteParams,
    CompleteResponse,
    ErrorResponse,
    GetParams,
    StartResponse,
)
from src.infra.errors import InvalidPayloadError, LedgerError, NotFoundError
from src.ledger.coordinator import LifecycleCoordinator

logger = structlog.get_logger()

M = TypeVar("M", bound=BaseModel)

_HTTP_STATUS_BY_CODE: dict[str, int] = {
    "INVALID_PARAMS": 400,
    "PARSE_ERROR": 400,
    "UNAUTHORIZED": 401,
    "NOT_FOUND": 404,
    "ALREADY_COMPLETED": 409,
    "PERSISTENCE_FAILURE": 503,
}


class LogicalCall(StrEnum):
    start = "start"
    complete = "complete"
    get = "get"
    list = "list"


@dataclass
class CallResult:
    status_code: int
    body: Any

    @property
    def ok(self) -> bool:
        return self.status_code < 400


def http_status_for(code: str) -> int:
    return _HTTP_STATUS_BY_CODE.get(code, 500)


def error_result(error: LedgerError) -> CallResult:
    if isinstance(error, NotFoundError):
        return CallResult(404, ErrorResponse(error="not found").model_dump(exclude_none=True))
    return CallResult(
        http_status_for(error.code),
        ErrorResponse(error=str(error), code=error.code).model_dump(),
    )


async def dispatch_call(
    coordinator: LifecycleCoordinator,
    call: LogicalCall | str,
    params: Any = None,
) -> CallResult:
    """Run one logical call against a coordinator and shape its response."""
    call = LogicalCall(call)
    try:
        body = await _invoke(coordinator, call, params if params is not None else {})
    except LedgerError as e:
        logger.warning(
            "request_error",
            kind=coordinator.kind.name,
            call=call.value,
            code=e.code,
            error=str(e),
        )
        return error_result(e)
    return CallResult(200, body)


async def _invoke(coordinator: LifecycleCoordinator, call: LogicalCall, params: Any) -> Any:
    if call is LogicalCall.start:
        record_id = await coordinator.start(params)
        return StartResponse(id=record_id).model_dump()

    if call is LogicalCall.complete:
        parsed = _validate(CompleteParams, params)
        await coordinator.complete(parsed.id, parsed.success, parsed.result_fields())
        return CompleteResponse().model_dump()

    if call is LogicalCall.get:
        parsed = _validate(GetParams, params)
        record = await coordinator.get(parsed.id)
        return record.to_dict()

    records = await coordinator.list()
    return {record_id: record.to_dict() for record_id, record in records.items()}


def _validate(model: type[M], params: Any) -> M:
    try:
        return model.model_validate(params)
    except ValidationError as e:
        raise InvalidPayloadError(str(e)) from e
