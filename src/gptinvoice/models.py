from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


UNKNOWN_DATE = "unknown"


class Invoice(BaseModel):
    model_config = ConfigDict(frozen=True)

    url: str
    # Raw text as captured from the portal row (e.g. "Jan 15, 2024", "2024-01-10"), or "unknown".
    date: str = UNKNOWN_DATE


class DownloadResult(BaseModel):
    """
    Outcome of a single invoice download.

    Exactly one of `file_path` (success) or `error` (failure) is set; `success` is the field to test.
    """

    model_config = ConfigDict(frozen=True)

    success: bool
    file_path: Optional[str] = None
    error: Optional[str] = None

    @model_validator(mode="after")
    def _check_exclusive(self) -> "DownloadResult":
        if self.success and (not self.file_path or self.error is not None):
            raise ValueError("successful DownloadResult requires file_path and no error")
        if not self.success and (self.error is None or self.file_path is not None):
            raise ValueError("failed DownloadResult requires error and no file_path")
        return self

    @classmethod
    def ok(cls, file_path: str) -> "DownloadResult":
        return cls(success=True, file_path=str(file_path))

    @classmethod
    def failed(cls, error: str) -> "DownloadResult":
        return cls(success=False, error=error or "Unknown error")


class RunSummary(BaseModel):
    output_dir: str
    listed: int = 0
    selected: int = 0
    # Order matches the order invoices were processed in.
    downloaded: list[str] = Field(default_factory=list)
    failed: list[tuple[str, str]] = Field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failed
