"""Parse branch and commit responses from the GitHub REST API."""

import json
from datetime import datetime

from .errors import ContentError
from .models import JSON_MEDIA_TYPE, BranchRecord


def is_json(content_type: str | None) -> bool:
    """True if the media type (ignoring parameters like charset) is JSON."""
    if not content_type:
        return False
    return content_type.split(";", 1)[0].strip().lower() == JSON_MEDIA_TYPE


def _decode(body: bytes | str, content_type: str | None):
    if not is_json(content_type):
        return None
    if isinstance(body, bytes):
        body = body.decode("utf-8", errors="replace")
    if not body.strip():
        return None
    try:
        return json.loads(body)
    except json.JSONDecodeError as e:
        raise ContentError(f"invalid JSON response: {e}") from e


def _branch_from(item) -> BranchRecord | None:
    if not isinstance(item, dict):
        return None
    name = item.get("name")
    if not isinstance(name, str) or not name:
        return None
    commit = item.get("commit")
    url = commit.get("url") if isinstance(commit, dict) else None
    if not isinstance(url, str):
        url = item.get("url") if isinstance(item.get("url"), str) else ""
    return BranchRecord(name=name, commit_url=url)


def parse_branches(body: bytes | str, content_type: str | None) -> list[BranchRecord]:
    """Extract branch records from a branches response.

    The body is either a single branch object or an array of them. Only
    ``name`` and the commit URL are read. An empty body or a non-JSON content
    type gives an empty list; a JSON body that does not decode raises
    ContentError.
    """
    data = _decode(body, content_type)
    if data is None:
        return []
    items = data if isinstance(data, list) else [data]
    records = []
    for item in items:
        record = _branch_from(item)
        if record is not None:
            records.append(record)
    return records


def parse_timestamp(value) -> datetime | None:
    if not isinstance(value, str) or not value:
        return None
    try:
        # GitHub uses a trailing Z, which fromisoformat only accepts from 3.11
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None


def parse_commit_time(body: bytes | str, content_type: str | None) -> datetime | None:
    """Read the commit time from a commit or single-branch response.

    Prefers the committer date, falls back to the author date.
    """
    data = _decode(body, content_type)
    if not isinstance(data, dict):
        return None
    # Single-branch responses nest the commit object one level deeper
    if isinstance(data.get("commit"), dict) and "commit" in data["commit"]:
        data = data["commit"]
    commit = data.get("commit")
    if not isinstance(commit, dict):
        return None
    for role in ("committer", "author"):
        person = commit.get(role)
        if isinstance(person, dict):
            ts = parse_timestamp(person.get("date"))
            if ts is not None:
                return ts
    return None
