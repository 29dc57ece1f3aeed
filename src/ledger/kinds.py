"""Entity kinds: the only place build and deployment differ."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any, Generic

from pydantic import ValidationError

from src.infra.errors import InvalidPayloadError
from src.ledger.models import (
    BuildPayload,
    BuildResult,
    DeploymentPayload,
    DeploymentResult,
    P,
    R,
    Record,
    RecordStatus,
)

# Status values written by older deployments of the service.
_LEGACY_STATUS = {"deploying": RecordStatus.running}


def _parse_timestamp(value: Any) -> datetime:
    # Older record sets store epoch milliseconds instead of ISO-8601.
    if isinstance(value, int | float):
        return datetime.fromtimestamp(value / 1000, tz=UTC)
    if isinstance(value, str):
        parsed = datetime.fromisoformat(value)
        return parsed if parsed.tzinfo else parsed.replace(tzinfo=UTC)
    msg = f"unsupported timestamp value: {value!r}"
    raise ValueError(msg)


@dataclass(frozen=True)
class EntityKind(Generic[P, R]):
    """Describes one kind of tracked work and how its fields are shaped."""

    name: str
    store_key: str
    payload_model: type[P]
    result_model: type[R]

    def parse_payload(self, data: Mapping[str, Any] | P) -> P:
        """Validate creation fields. Raises InvalidPayloadError."""
        if isinstance(data, self.payload_model):
            return data.model_copy(deep=True)
        try:
            return self.payload_model.model_validate(data)
        except ValidationError as e:
            raise InvalidPayloadError(f"invalid {self.name} payload: {e}") from e

    def parse_result(self, data: Mapping[str, Any] | R | None) -> R:
        """Validate completion fields. Raises InvalidPayloadError."""
        if isinstance(data, self.result_model):
            return data.model_copy(deep=True)
        try:
            return self.result_model.model_validate(data or {})
        except ValidationError as e:
            raise InvalidPayloadError(f"invalid {self.name} result: {e}") from e

    def record_from_dict(self, record_id: str, data: Mapping[str, Any]) -> Record[P, R]:
        """Rebuild a Record from its persisted flat form.

        Raises InvalidPayloadError, KeyError or ValueError on malformed input.
        """
        raw_status = data["status"]
        status = _LEGACY_STATUS.get(raw_status) or RecordStatus(raw_status)
        end_time = None
        result = None
        if status is not RecordStatus.running:
            end_time = _parse_timestamp(data["endTime"])
            result = self.parse_result(data)
        return Record(
            id=record_id,
            payload=self.parse_payload(data),
            start_time=_parse_timestamp(data["startTime"]),
            status=status,
            result=result,
            end_time=end_time,
        )


BUILD: EntityKind[BuildPayload, BuildResult] = EntityKind(
    name="build",
    store_key="builds",
    payload_model=BuildPayload,
    result_model=BuildResult,
)

DEPLOYMENT: EntityKind[DeploymentPayload, DeploymentResult] = EntityKind(
    name="deployment",
    store_key="deployments",
    payload_model=DeploymentPayload,
    result_model=DeploymentResult,
)

ALL_KINDS: tuple[EntityKind, ...] = (BUILD, DEPLOYMENT)
