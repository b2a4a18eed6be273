"""
Error taxonomy for the analysis pipeline.

Every error records the pipeline stage it was raised in and, where it
applies, the indicator it concerns:

- SourceUnavailableError: fetch/parse of the raw data failed (fatal)
- EmptyDatasetError: nothing usable left after cleaning (fatal)
- DuplicateYearError: the raw data repeats a year (fatal)
- InsufficientDataError: a derivation lacks enough non-missing points
- DegenerateInputError: zero-variance input to the correlation analysis
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


class PipelineError(ValueError):
    """Base class for all pipeline failures."""

    default_stage = "pipeline"

    def __init__(
        self,
        message: str,
        stage: Optional[str] = None,
        indicator: Optional[str] = None,
    ):
        self.stage = stage or self.default_stage
        self.indicator = indicator
        self.message = message
        super().__init__(self._format())

    def _format(self) -> str:
        where = f"[{self.stage}"
        if self.indicator:
            where += f":{self.indicator}"
        return f"{where}] {self.message}"


class SourceUnavailableError(PipelineError):
    """The data source could not be reached or its payload could not be parsed."""

    default_stage = "fetch"


class EmptyDatasetError(PipelineError):
    """The dataset has no usable rows."""

    default_stage = "clean"


class DuplicateYearError(PipelineError):
    """The raw data contains the same year more than once."""

    default_stage = "clean"


class InsufficientDataError(PipelineError):
    """Too few non-missing observations for a derivation."""

    def __init__(
        self,
        message: str,
        stage: Optional[str] = None,
        indicator: Optional[str] = None,
        n_obs: int = 0,
        required: int = 0,
    ):
        self.n_obs = n_obs
        self.required = required
        super().__init__(message, stage=stage, indicator=indicator)


class DegenerateInputError(PipelineError):
    """Zero-variance input makes the correlation coefficient undefined."""

    default_stage = "correlation"


@dataclass(frozen=True)
class PipelineIssue:
    """A non-fatal failure of one derivation, kept in the pipeline result."""

    stage: str
    indicator: Optional[str]
    error_type: str
    message: str

    @classmethod
    def from_error(cls, error: PipelineError) -> "PipelineIssue":
        return cls(
            stage=error.stage,
            indicator=error.indicator,
            error_type=type(error).__name__,
            message=error.message,
        )

    def __str__(self) -> str:
        where = self.stage if not self.indicator else f"{self.stage}:{self.indicator}"
        return f"{self.error_type} [{where}] {self.message}"


__all__ = [
    "PipelineIssue",
    "PipelineError",
    "SourceUnavailableError",
    "EmptyDatasetError",
    "DuplicateYearError",
    "InsufficientDataError",
    "DegenerateInputError",
]
