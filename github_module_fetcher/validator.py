"""Decide whether a downloaded archive is an installable module."""

import zipfile
from pathlib import Path
from typing import Sequence

from .errors import ContentError
from .models import DESCRIPTOR_EXTENSION


def archive_entries(path: Path) -> list[str]:
    """List the entry names of a zip archive, in archive order."""
    try:
        with zipfile.ZipFile(path) as zf:
            return zf.namelist()
    except (zipfile.BadZipFile, OSError) as e:
        raise ContentError(f"not a readable zip archive: {e}") from e


def root_prefix(entries: Sequence[str]) -> str:
    """Leading folder of the first entry, with its trailing slash.

    GitHub zipballs start with a single ``owner-repo-sha/`` folder entry.
    Returns "" when the first entry sits at the top level.
    """
    if not entries:
        return ""
    first = entries[0]
    idx = first.find("/")
    return first[: idx + 1] if idx >= 0 else ""


def root_entry(entries: Sequence[str]) -> str:
    """Name of the archive's root folder, without the slash."""
    return root_prefix(entries).rstrip("/")


def is_valid_module(entries: Sequence[str], extension: str = DESCRIPTOR_EXTENSION) -> bool:
    """True if a descriptor file sits directly inside the archive's root folder.

    Descriptors in subfolders don't count, nor does anything outside the root.
    """
    root = root_prefix(entries)
    ext = extension.lower()
    for name in entries:
        if not name.startswith(root):
            continue
        rest = name[len(root):]
        if rest and "/" not in rest and rest.lower().endswith(ext):
            return True
    return False
