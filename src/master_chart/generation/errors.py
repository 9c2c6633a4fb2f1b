"""Error taxonomy shared by the model clients and the pass orchestrator."""

from __future__ import annotations


class PipelineError(RuntimeError):
    """Base class for every failure raised by the generation pipeline."""


class Cancelled(PipelineError):
    """Raised when the run's cancellation token has been signalled.

    Callers treat this as a user abort: exit quietly, never show an error banner.
    """

    def __init__(self, message: str = "Generation cancelled by user") -> None:
        super().__init__(message)


class UpstreamFailure(PipelineError):
    """Raised when the model service fails or returns content that cannot be parsed."""

    def __init__(
        self,
        message: str,
        *,
        error_type: str = "upstream_failure",
        status_code: int | None = None,
        retryable: bool = False,
    ) -> None:
        super().__init__(message)
        self.error_type = error_type
        self.status_code = status_code
        self.retryable = retryable


__all__ = ["Cancelled", "PipelineError", "UpstreamFailure"]
