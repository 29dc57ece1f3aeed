"""Record types shared by every entity kind.

A Record is generic over the kind's creation payload (P) and completion
result (R). The coordinator never looks inside either; it only stores,
copies and serializes them.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from enum import StrEnum
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class RecordStatus(StrEnum):
    running = "running"
    success = "success"
    failed = "failed"


class LedgerModel(BaseModel):
    """Base for payload/result models: camelCase on the wire, snake_case in Python."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


class BuildPayload(LedgerModel):
    package_name: str = Field(min_length=1)
    dependencies: list[str] = Field(default_factory=list)


class BuildResult(LedgerModel):
    artifacts: list[str] = Field(default_factory=list)


class DeploymentPayload(LedgerModel):
    environment: str = Field(min_length=1)
    packages: list[str] = Field(default_factory=list)


class DeploymentResult(LedgerModel):
    details: dict[str, Any] = Field(default_factory=dict)


P = TypeVar("P", bound=BaseModel)
R = TypeVar("R", bound=BaseModel)


@dataclass(frozen=True)
class Record(Generic[P, R]):
    id: str
    payload: P
    start_time: datetime
    status: RecordStatus = RecordStatus.running
    result: R | None = None
    end_time: datetime | None = None

    @property
    def is_running(self) -> bool:
        return self.status is RecordStatus.running

    def snapshot(self) -> Record[P, R]:
        """Return a deep copy safe to hand out of the coordinator."""
        return replace(
            self,
            payload=self.payload.model_copy(deep=True),
            result=self.result.model_copy(deep=True) if self.result is not None else None,
        )

    def to_dict(self) -> dict[str, Any]:
        """Flat JSON shape used both on the wire and in the durable store."""
        data: dict[str, Any] = {"id": self.id, "status": self.status.value}
        data.update(self.payload.model_dump(mode="json", by_alias=True))
        data["startTime"] = self.start_time.isoformat()
        if self.result is not None:
            data.update(self.result.model_dump(mode="json", by_alias=True))
        if self.end_time is not None:
            data["endTime"] = self.end_time.isoformat()
        return data
