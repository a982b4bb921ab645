"""Unit tests for branch and commit response parsing."""

import json
from datetime import datetime, timezone

import pytest

from .errors import ContentError
from .parser import is_json, parse_branches, parse_commit_time

JSON = "application/json; charset=utf-8"


def _branch(name, sha="a" * 40):
    return {
        "name": name,
        "commit": {"sha": sha, "url": f"https://api.github.com/repos/o/r/commits/{sha}"},
        "protected": False,
    }


def describe_is_json():
    def it_ignores_media_type_parameters():
        assert is_json("application/json; charset=utf-8")
        assert is_json("Application/JSON")

    def it_rejects_other_types():
        assert not is_json("text/html")
        assert not is_json("application/vnd.github+json")
        assert not is_json(None)
        assert not is_json("")


def describe_parse_branches():
    def it_returns_one_record_per_object_in_order():
        body = json.dumps([_branch("main"), _branch("dev"), _branch("feature/x")])

        records = parse_branches(body, JSON)

        assert [r.name for r in records] == ["main", "dev", "feature/x"]

    def it_reads_the_commit_url():
        records = parse_branches(json.dumps([_branch("main", sha="b" * 40)]), JSON)

        assert records[0].commit_url == f"https://api.github.com/repos/o/r/commits/{'b' * 40}"
        assert records[0].last_commit is None

    def it_falls_back_to_top_level_url():
        body = json.dumps([{"name": "main", "url": "https://example.test/main"}])

        assert parse_branches(body, JSON)[0].commit_url == "https://example.test/main"

    def it_accepts_a_single_object():
        records = parse_branches(json.dumps(_branch("main")), JSON)

        assert [r.name for r in records] == ["main"]

    def it_accepts_bytes():
        records = parse_branches(json.dumps([_branch("main")]).encode(), JSON)

        assert records[0].name == "main"

    @pytest.mark.parametrize("body", ["[]", "", "   ", b""])
    def it_returns_empty_for_empty_bodies(body):
        assert parse_branches(body, JSON) == []

    def it_returns_empty_for_non_json_content_type():
        assert parse_branches(json.dumps([_branch("main")]), "text/html") == []
        assert parse_branches(json.dumps([_branch("main")]), None) == []

    def it_skips_items_without_a_name():
        body = json.dumps([{"name": ""}, {"commit": {}}, "main", _branch("ok"), {"name": 7}])

        assert [r.name for r in parse_branches(body, JSON)] == ["ok"]

    def it_raises_content_error_for_broken_json():
        with pytest.raises(ContentError):
            parse_branches('[{"name": "main"', JSON)


def describe_parse_commit_time():
    def it_reads_committer_date_from_a_commit():
        body = json.dumps({
            "sha": "c" * 40,
            "commit": {
                "author": {"date": "2024-01-01T00:00:00Z"},
                "committer": {"date": "2024-02-03T04:05:06Z"},
            },
        })

        assert parse_commit_time(body, JSON) == datetime(2024, 2, 3, 4, 5, 6, tzinfo=timezone.utc)

    def it_reads_a_single_branch_response():
        body = json.dumps({
            "name": "main",
            "commit": {"sha": "c" * 40, "commit": {"author": {"date": "2024-01-01T00:00:00Z"}}},
        })

        assert parse_commit_time(body, JSON) == datetime(2024, 1, 1, tzinfo=timezone.utc)

    def it_returns_none_without_a_date():
        assert parse_commit_time(json.dumps({"sha": "c"}), JSON) is None
        assert parse_commit_time(json.dumps({"commit": {"author": {"date": "garbage"}}}), JSON) is None
        assert parse_commit_time("", JSON) is None
