"""
Pipeline error taxonomy and stage results.

Every error raised by a publish stage carries the stage that produced it and
an HTTP-style status code. Stages return ``StageResult`` values so the
publisher can thread outcomes explicitly and only collapse them into a wire
envelope at the outer boundary.
"""

from dataclasses import dataclass
from typing import Generic, Optional, TypeVar, Union

from gist_agent.types import PipelineStage

T = TypeVar("T")


MIN_STATUS = 200
MAX_STATUS = 599


def safe_status(status: Optional[int], default: int = 500) -> int:
    """Clamp a status code into [200, 599], replacing anything else with ``default``."""
    if not isinstance(status, int) or status < MIN_STATUS or status > MAX_STATUS:
        return default
    return status


class ConfigurationError(Exception):
    """Required configuration (e.g. vendor credentials) is missing."""

    pass


class PipelineError(Exception):
    """Base class for errors produced by a publish stage."""

    status_code = 500

    def __init__(
        self,
        message: str,
        stage: Union[PipelineStage, str] = PipelineStage.INTERNAL,
        status_code: Optional[int] = None,
        code: Optional[str] = None,
    ):
        super().__init__(message)
        self.message = message
        self.stage = PipelineStage(stage)
        if status_code is not None:
            self.status_code = status_code
        self.code = code

    def __str__(self) -> str:
        return self.message


class ValidationError(PipelineError):
    """Caller sent a malformed request or generation produced an incomplete payload."""

    status_code = 400


class NotFoundError(PipelineError):
    """A referenced record (e.g. a trend) does not exist."""

    status_code = 404


class ConflictError(PipelineError):
    """The trend already has a published item."""

    status_code = 409


class UpstreamError(PipelineError):
    """A provider or vendor failed; retryable by the caller."""

    status_code = 502


class PersistenceError(PipelineError):
    """Storage write failed; ``code`` keeps the underlying storage code."""

    status_code = 500


class InternalError(PipelineError):
    """Unexpected fault."""

    status_code = 500


@dataclass
class StageResult(Generic[T]):
    """Outcome of a single stage: either a value or a tagged error."""

    value: Optional[T] = None
    error: Optional[PipelineError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: T) -> "StageResult[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, error: PipelineError) -> "StageResult[T]":
        return cls(error=error)
