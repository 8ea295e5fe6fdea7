"""
Result and progress models shared by the client, the session and the CLI.
"""
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional

from tzlocal import get_localzone

from .files import CandidateFile


def _now():
    return datetime.now(get_localzone())


class Outcome(Enum):
    SUCCESS = "success"
    SKIPPED = "skipped"
    FAILED = "failed"


class SessionState(Enum):
    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"
    ABORTED = "aborted"


@dataclass(frozen=True)
class UploadResult:
    """Immutable outcome of one file in a session."""
    file: CandidateFile
    outcome: Outcome
    detail: Optional[str] = None
    http_status: Optional[int] = None
    remote_id: Optional[str] = None
    auth_failure: bool = False
    timestamp: datetime = field(default_factory=_now)

    @property
    def success(self) -> bool:
        return self.outcome is Outcome.SUCCESS

    @classmethod
    def ok(cls, file, http_status=None, remote_id=None):
        return cls(file=file, outcome=Outcome.SUCCESS, http_status=http_status, remote_id=remote_id)

    @classmethod
    def skip(cls, file, reason):
        return cls(file=file, outcome=Outcome.SKIPPED, detail=reason)

    @classmethod
    def fail(cls, file, error, http_status=None, auth_failure=False):
        return cls(file=file, outcome=Outcome.FAILED, detail=str(error), http_status=http_status,
                   auth_failure=auth_failure)


@dataclass(frozen=True)
class Progress:
    total: int = 0
    processed: int = 0
    succeeded: int = 0
    failed: int = 0
    skipped: int = 0

    @property
    def fraction(self) -> float:
        if self.total == 0:
            return 1.0
        return self.processed / self.total

    def summary(self) -> str:
        return (f"Progress: {self.processed}/{self.total} files | ✅ Success: {self.succeeded} | "
                f"⏩ Skipped: {self.skipped} | ❌ Failed: {self.failed}")
