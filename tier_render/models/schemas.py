"""
Pydantic Models and Schemas
===========================

Core data models for render tasks, their outcomes, and run bookkeeping.
Tasks and outcomes are immutable once created.
"""

from typing import Optional, Dict, Any, Union
from datetime import datetime, timezone
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, field_validator


class _Record(BaseModel):
    """Base for immutable records serialized with camelCase aliases."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)


class Task(_Record):
    """One document to render, with its tier membership fixed at scan time."""

    path: str = Field(..., description="Source document path")
    tier: str = Field(..., description="Tier (subdirectory) name")
    tier_index: int = Field(..., ge=1, alias="tierIndex", description="1-based position in tier")
    tier_total: int = Field(..., ge=1, alias="tierTotal", description="Documents in the tier")

    @property
    def filename(self) -> str:
        return Path(self.path).name


class _OutcomeBase(_Record):
    path: str
    filename: str
    tier: str
    tier_index: int = Field(..., alias="tierIndex")
    tier_total: int = Field(..., alias="tierTotal")


class RenderSuccess(_OutcomeBase):
    """Document rendered; the screenshot may still have failed."""

    text: str = ""
    screenshot: Optional[str] = None
    screenshot_failed: bool = Field(default=False, alias="screenshotFailed")

    @property
    def ok(self) -> bool:
        return True


class RenderFailure(_OutcomeBase):
    """Document could not be loaded or its text could not be extracted."""

    error: str

    @field_validator("error")
    @classmethod
    def validate_error(cls, v: str) -> str:
        """Failures always carry a message."""
        return v if v.strip() else "Unknown render error"

    @property
    def ok(self) -> bool:
        return False


TaskOutcome = Union[RenderSuccess, RenderFailure]


def success_for(task: Task, text: str, screenshot: Optional[str]) -> RenderSuccess:
    """Build a success outcome for a task."""
    return RenderSuccess(
        path=task.path,
        filename=task.filename,
        tier=task.tier,
        tier_index=task.tier_index,
        tier_total=task.tier_total,
        text=text,
        screenshot=screenshot,
        screenshot_failed=screenshot is None,
    )


def failure_for(task: Task, error: str) -> RenderFailure:
    """Build a failure outcome for a task."""
    return RenderFailure(
        path=task.path,
        filename=task.filename,
        tier=task.tier,
        tier_index=task.tier_index,
        tier_total=task.tier_total,
        error=error,
    )


def outcome_to_record(outcome: TaskOutcome) -> Dict[str, Any]:
    """Serialize an outcome to its JSON record shape."""
    return outcome.model_dump(by_alias=True, mode="json")


def outcome_from_record(record: Dict[str, Any]) -> TaskOutcome:
    """Parse a JSON record, discriminating failures by the presence of ``error``."""
    if record.get("error") is not None:
        return RenderFailure.model_validate(record)
    return RenderSuccess.model_validate(record)


class ErrorRecord(_Record):
    """One line of the run's error log."""

    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    path: str
    message: str

    def to_line(self) -> str:
        ts = self.timestamp.isoformat(timespec="milliseconds").replace("+00:00", "Z")
        return f"[{ts}] {self.path} - {self.message}"


class RunSummary(BaseModel):
    """Totals printed at the end of a batch run."""

    files_processed: int = 0
    succeeded: int = 0
    failed: int = 0
    screenshot_failures: int = 0
    error_count: int = 0
    elapsed_seconds: float = 0.0
    output_file: str = ""
    error_log_file: str = ""
    error_log_written: bool = True
