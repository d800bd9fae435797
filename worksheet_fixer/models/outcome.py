"""Validation state and the final repair outcome."""
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from worksheet_fixer.models.archive import Directory


ProgressLevel = Literal["info", "success", "warning", "error"]
Classification = Literal["success", "warning", "error"]


class RebuildFlags(BaseModel):
    """Which persisted artifacts must be regenerated. Flags only go up."""
    needs_index_rebuild: bool = False
    needs_meta_rebuild: bool = False

    def flag_index(self) -> None:
        self.needs_index_rebuild = True

    def flag_meta(self) -> None:
        self.needs_meta_rebuild = True


class ValidationState(BaseModel):
    """Accumulator threaded through one validation pass."""
    flags: RebuildFlags = Field(default_factory=RebuildFlags)
    warnings: list[str] = Field(default_factory=list)
    page_index: Optional[list[str]] = None  # None when pages.json was unusable
    meta: Optional[dict[str, Any]] = None  # None when worksheet.json was unusable
    observed_page_ids: list[str] = Field(default_factory=list)  # directory order


class SanitizeResult(BaseModel):
    """Result of stripping disallowed elements from a page fragment."""
    changed: bool
    html: str
    removed: list[str] = Field(default_factory=list)  # short description per element


class RepairOutcome(BaseModel):
    """What a repair hands back to the caller."""
    model_config = ConfigDict(frozen=True)

    classification: Classification
    warnings: list[str] = Field(default_factory=list)
    artifact: Optional[bytes] = None  # absent on fatal error
    error: Optional[str] = None  # the fatal message, if any

    # Read-only snapshot of what was found in the input
    directory: Directory = Field(default_factory=dict)
    page_index: Optional[list[str]] = None
    meta: Optional[dict[str, Any]] = None

    @property
    def ok(self) -> bool:
        return self.artifact is not None
