"""Tracked modules and their health on disk."""

from datetime import datetime, timezone
from pathlib import Path

from .models import DESCRIPTOR_EXTENSION, ModuleRecord, ModuleState


def _aware(ts: datetime) -> datetime:
    return ts if ts.tzinfo is not None else ts.replace(tzinfo=timezone.utc)


class ModuleRegistry:
    """In-memory list of tracked modules.

    Persisting the list is up to the caller; records go in and out as
    ModuleRecord objects (or dicts via ModuleRecord.to_dict/from_dict).
    """

    def __init__(self, records: list[ModuleRecord] | None = None):
        self.records: list[ModuleRecord] = list(records or [])

    def find(self, name: str, location: str) -> ModuleRecord | None:
        """Look up a record by name and location, ignoring case."""
        for record in self.records:
            if record.name.lower() == name.lower() and record.location.lower() == location.lower():
                return record
        return None

    def upsert(self, record: ModuleRecord) -> ModuleRecord:
        """Add a record, or update branch and last commit of a matching one."""
        existing = self.find(record.name, record.location)
        if existing is None:
            self.records.append(record)
            return record
        existing.branch = record.branch
        existing.last_commit = record.last_commit
        return existing

    def module_state(
        self,
        record: ModuleRecord,
        module_dir: Path,
        latest_commit: datetime | None = None,
    ) -> ModuleState:
        """Check that the module is installed and whether its branch moved on.

        ERROR if ``module_dir/name`` is missing or has no descriptor at its top
        level. UPDATE_PENDING if ``latest_commit`` is newer than the installed
        commit.
        """
        local = Path(module_dir) / record.name
        if not local.is_dir():
            return ModuleState.ERROR
        ext = DESCRIPTOR_EXTENSION.lower()
        if not any(p.is_file() and p.name.lower().endswith(ext) for p in local.iterdir()):
            return ModuleState.ERROR
        if latest_commit is not None and (
            record.last_commit is None or _aware(latest_commit) > _aware(record.last_commit)
        ):
            return ModuleState.UPDATE_PENDING
        return ModuleState.OKAY
