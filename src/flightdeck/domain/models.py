# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, ModelWrapValidatorHandler, PrivateAttr, model_validator

from flightdeck.exceptions import JobRefError


class ContainerType(str, Enum):
    CHECK = "check"
    GET = "get"
    PUT = "put"
    TASK = "task"


class Build(BaseModel):
    """
    A build as returned by the orchestration service.
    Status is owned by the service; the client never changes it.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    id: int = Field(..., description="Numeric build id, unique on the service.")
    name: str = Field(..., description="Display name, e.g. the build number within its job.")
    status: Optional[str] = Field(default=None, description="Build status, unset right after creation.")
    job_name: Optional[str] = None
    pipeline_name: Optional[str] = None
    team_name: Optional[str] = None


class Container(BaseModel):
    """
    A live execution container backing one step of a build.

    Optional fields stay None when the service omits them; unknown wire fields
    are kept so the record can be re-encoded as received.
    """

    model_config = ConfigDict(frozen=True, extra="allow")

    id: str = Field(..., description="Container handle.")
    worker_name: str
    type: ContainerType
    pipeline_name: Optional[str] = None
    job_name: Optional[str] = None
    build_name: Optional[str] = None
    build_id: Optional[int] = None
    step_name: Optional[str] = None
    resource_name: Optional[str] = None
    attempt: Optional[str] = None

    @property
    def handle(self) -> str:
        return self.id

    @property
    def name(self) -> Optional[str]:
        """Step name, or the resource name for checks that run outside a build."""
        return self.step_name or self.resource_name

    _wire_keys: List[str] = PrivateAttr(default_factory=list)

    @model_validator(mode="wrap")
    @classmethod
    def remember_wire_keys(cls, data: Any, handler: ModelWrapValidatorHandler["Container"]) -> "Container":
        container = handler(data)
        if isinstance(data, dict):
            container._wire_keys = list(data)
        return container

    @model_validator(mode="after")
    def validate_job_context(self) -> "Container":
        if self.job_name and not self.pipeline_name:
            raise ValueError(f"container {self.id} has a job but no pipeline")
        return self

    def to_wire(self) -> Dict[str, Any]:
        """Returns the record with the keys the service sent, in the order it sent them."""
        dumped = self.model_dump(mode="json")
        keys = self._wire_keys or [k for k in dumped if k in self.model_fields_set or k in (self.model_extra or {})]
        return {key: dumped[key] for key in keys if key in dumped}


class Team(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    id: Optional[int] = None
    name: str


class Job(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    name: str
    pipeline_name: Optional[str] = None
    next_build: Optional[Build] = None
    finished_build: Optional[Build] = None


class JobRef(BaseModel):
    """A parsed PIPELINE/JOB flag."""

    model_config = ConfigDict(frozen=True)

    pipeline: str
    job: str

    @classmethod
    def parse(cls, value: str) -> "JobRef":
        pipeline, sep, job = value.partition("/")
        if not sep or not pipeline or not job or "/" in job:
            raise JobRefError(f"argument format should be <pipeline>/<job>, got '{value}'")
        return cls(pipeline=pipeline, job=job)

    def __str__(self) -> str:
        return f"{self.pipeline}/{self.job}"
