"""Run-level exceptions. Per-document failures never raise; they end up in the run log."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .models import RunSummary


class HarvestError(Exception):
    """A condition that fails the whole run."""

    code = "SERVER_ERROR"
    status = 500

    def __init__(self, message: str, detail: str | None = None):
        self.message = message
        self.detail = detail
        super().__init__(message)

    def to_dict(self) -> dict:
        out = {"error": self.message, "code": self.code}
        if self.detail:
            out["detail"] = self.detail
        return out


class Unauthorized(HarvestError):
    code = "UNAUTHORIZED"
    status = 401


class InvalidRequest(HarvestError):
    code = "INVALID_REQUEST"
    status = 400


class InvalidJobId(HarvestError):
    code = "INVALID_JOB_ID"
    status = 400


class NoDocuments(HarvestError):
    code = "NO_DOCUMENTS"
    status = 400


class TooManyDocuments(HarvestError):
    code = "TOO_MANY_DOCUMENTS"
    status = 400


class NoFilesDownloaded(HarvestError):
    """Every document failed. The summary is kept so callers can see what was tried."""

    code = "NO_FILES_DOWNLOADED"
    status = 400

    def __init__(self, message: str, summary: RunSummary):
        self.summary = summary
        super().__init__(message)

    def to_dict(self) -> dict:
        out = super().to_dict()
        out["downloadLogs"] = self.summary.log_dicts()
        return out


class DriveNotConfigured(HarvestError):
    code = "DRIVE_NOT_CONFIGURED"
    status = 500


class DriveEmpty(HarvestError):
    code = "DRIVE_EMPTY"
    status = 404


class DriveTransferFailed(HarvestError):
    code = "DRIVE_TRANSFER_FAILED"
    status = 502


class DiscoveryFailed(HarvestError):
    code = "DISCOVERY_FAILED"
    status = 502
