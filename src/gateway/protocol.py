from __future__ import annotations

from typing import Any, Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, StrictBool


class CompleteParams(BaseModel):
    """complete request: id + outcome; every other field is the kind's result."""

    model_config = ConfigDict(extra="allow")

    # buildId / deploymentId are accepted from older clients
    id: str = Field(min_length=1, validation_alias=AliasChoices("id", "buildId", "deploymentId"))
    success: StrictBool

    def result_fields(self) -> dict[str, Any]:
        return dict(self.model_extra or {})


class GetParams(BaseModel):
    id: str = Field(min_length=1)


class StartResponse(BaseModel):
    id: str


class CompleteResponse(BaseModel):
    acknowledged: Literal[True] = True


class ErrorResponse(BaseModel):
    error: str
    code: str | None = None
