"""Data models and constants for module installation."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path

DESCRIPTOR_EXTENSION = ".psd1"  # Module manifest required at the archive root
JSON_MEDIA_TYPE = "application/json"
# GitHub sends the canonical spelling over HTTP/1.1 and lowercase over HTTP/2
RATE_LIMIT_REMAINING_HEADERS = ("X-RateLimit-Remaining", "x-ratelimit-remaining")
RATE_LIMIT_RESET_HEADERS = ("X-RateLimit-Reset", "x-ratelimit-reset")
DOWNLOAD_CHUNK_SIZE = 64 * 1024


@dataclass(frozen=True)
class BranchRecord:
    """One branch of a repository as listed by the branches endpoint."""

    name: str
    commit_url: str = ""
    last_commit: datetime | None = None


@dataclass
class ArchiveHandle:
    """A downloaded archive sitting in a temporary file."""

    path: Path
    size_bytes: int


@dataclass
class ModuleRecord:
    """An installed module, handed back to whoever tracks installed modules."""

    name: str
    location: str
    branch: str
    last_commit: datetime | None = None

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "location": self.location,
            "branch": self.branch,
            "last_commit": self.last_commit.isoformat() if self.last_commit else None,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ModuleRecord":
        last_commit = data.get("last_commit")
        return cls(
            name=data["name"],
            location=data.get("location", ""),
            branch=data.get("branch", ""),
            last_commit=datetime.fromisoformat(last_commit) if last_commit else None,
        )


class ModuleState(Enum):
    OKAY = "okay"
    UPDATE_PENDING = "update_pending"
    ERROR = "error"


@dataclass
class InstallResult:
    """Outcome of a single fetch-and-install call.

    Truthy only when the module was installed. ``errors`` holds what went wrong
    during this call; a non-fatal cleanup failure can appear next to a success.
    """

    ok: bool
    record: ModuleRecord | None = None
    path: Path | None = None
    errors: list = field(default_factory=list)

    def __bool__(self) -> bool:
        return self.ok
