"""GitHub REST client that lists branches and installs branch archives as modules."""

import hashlib
import logging
import os
import re
import tempfile
from dataclasses import replace
from datetime import datetime, timedelta, timezone
from pathlib import Path
from urllib.parse import quote

import httpx
from cachetta import Cachetta

from .cancel import CancelToken
from .errors import (
    CleanupError,
    ContentError,
    ErrorLog,
    FetchError,
    InstallError,
    TransportError,
    ValidationError,
)
from .installer import ArchiveInstaller
from .models import (
    DESCRIPTOR_EXTENSION,
    DOWNLOAD_CHUNK_SIZE,
    ArchiveHandle,
    BranchRecord,
    InstallResult,
    ModuleRecord,
)
from .parser import parse_branches, parse_commit_time, parse_timestamp
from .rate_limit import RateLimiter
from .settings import get_settings
from .validator import archive_entries, is_valid_module, root_entry

logger = logging.getLogger(__name__)

ACCEPT = "application/vnd.github+json"
BRANCHES_PER_PAGE = 100
# Commits addressed by SHA never change, so their lookups are cached
COMMIT_CACHE_DURATION = timedelta(days=30)
_SHA_COMMIT_URL = re.compile(r"/commits/[0-9a-fA-F]{40}$")


def _segment(value: str) -> str:
    return quote(value, safe="")


def _content_length(resp: httpx.Response) -> int | None:
    val = resp.headers.get("content-length")
    if val is None:
        return None
    try:
        return int(val)
    except ValueError:
        return None


class RepoClient:
    """Lists a repository's branches and installs a branch's zipball as a module.

    Failures are never raised to the caller. Each one is recorded in
    ``errors`` (and, for installs, in the returned InstallResult); the
    remaining request quota from the last response is in
    ``rate_limit_remaining``. Safe to share between threads.
    """

    def __init__(
        self,
        api_url: str | None = None,
        token: str | None = None,
        user_agent: str | None = None,
        timeout: float | None = None,
        cache_dir: Path | None = None,
        temp_dir: Path | None = None,
        transport: httpx.BaseTransport | None = None,
    ):
        settings = get_settings()
        self.api_url = (api_url or settings.github_api_url).rstrip("/")
        token = token if token is not None else settings.github_token
        headers = {
            "User-Agent": user_agent or settings.user_agent,
            "Accept": ACCEPT,
        }
        if token:
            headers["Authorization"] = f"bearer {token}"
        self._client = httpx.Client(
            headers=headers,
            timeout=timeout or settings.request_timeout,
            # zipball requests redirect to codeload.github.com
            follow_redirects=True,
            transport=transport,
        )
        self.temp_dir = temp_dir
        self.rate_limiter = RateLimiter()
        self.errors = ErrorLog()
        self.installer = ArchiveInstaller()

        cache_dir = Path(cache_dir or settings.cache_dir)

        def _commit_cache_path(url):
            key = hashlib.sha256(url.encode()).hexdigest()[:16]
            return cache_dir / f"commit-{key}.json"

        # Exceptions propagate and are not cached
        def _do_fetch_commit(url):
            resp = self._get(url)
            ts = parse_commit_time(resp.content, resp.headers.get("content-type"))
            if ts is None:
                raise ContentError("response has no commit date", uri=url)
            return {"date": ts.isoformat()}

        self._cached_fetch_commit = Cachetta(path=_commit_cache_path, duration=COMMIT_CACHE_DURATION)(
            _do_fetch_commit
        )
        self._raw_fetch_commit = _do_fetch_commit

    @property
    def rate_limit_remaining(self) -> int:
        return self.rate_limiter.remaining

    def branches_url(self, owner: str, repo: str) -> str:
        return f"{self.api_url}/repos/{_segment(owner)}/{_segment(repo)}/branches"

    def archive_url(self, owner: str, repo: str, branch: str) -> str:
        return f"{self.api_url}/repos/{_segment(owner)}/{_segment(repo)}/zipball/{quote(branch, safe='/')}"

    def commit_url(self, owner: str, repo: str, ref: str) -> str:
        return f"{self.api_url}/repos/{_segment(owner)}/{_segment(repo)}/commits/{quote(ref, safe='/')}"

    def _record(self, error: FetchError) -> None:
        logger.warning("%s", error)
        self.errors.append(error)

    def _get(self, url: str, params: dict | None = None) -> httpx.Response:
        logger.debug("GET %s", url)
        try:
            resp = self._client.get(url, params=params)
        except httpx.HTTPError as e:
            raise TransportError(str(e) or type(e).__name__, uri=url) from e
        # Rate limit headers come with error responses too
        remaining = self.rate_limiter.observe(resp.headers)
        if not resp.is_success:
            message = f"HTTP {resp.status_code} {resp.reason_phrase}"
            if resp.status_code in (403, 429) and remaining == 0:
                message += f" (rate limit exhausted, resets in {self.rate_limiter.seconds_until_reset}s)"
            raise TransportError(message, uri=url)
        return resp

    def list_branches(self, owner: str, repo: str) -> list[BranchRecord]:
        """List the branches of ``owner/repo``.

        Returns an empty list if the request fails or the response isn't JSON;
        failures are recorded in ``errors``.
        """
        url = self.branches_url(owner, repo)
        try:
            resp = self._get(url, params={"per_page": BRANCHES_PER_PAGE})
            return parse_branches(resp.content, resp.headers.get("content-type"))
        except FetchError as e:
            if e.uri is None:
                e.uri = url
            self._record(e)
            return []

    def get_last_commit(self, branch: BranchRecord) -> datetime | None:
        """Commit time of the branch head, looked up through its commit URL.

        Returns None when the branch has no commit URL or the lookup fails.
        """
        if branch.last_commit is not None:
            return branch.last_commit
        if not branch.commit_url:
            return None
        if _SHA_COMMIT_URL.search(branch.commit_url):
            fetch = self._cached_fetch_commit
        else:
            fetch = self._raw_fetch_commit
        try:
            try:
                data = fetch(branch.commit_url)
            except OSError as e:
                # Cachetta re-raises cache write failures
                logger.warning("Commit cache unavailable (%s), looking up %s uncached", e, branch.name)
                data = self._raw_fetch_commit(branch.commit_url)
        except FetchError as e:
            logger.warning("Could not look up last commit of %s: %s", branch.name, e)
            return None
        return parse_timestamp(data.get("date"))

    def latest_commit(self, owner: str, repo: str, branch: str) -> datetime | None:
        """Commit time of the current head of ``branch``."""
        return self.get_last_commit(BranchRecord(name=branch, commit_url=self.commit_url(owner, repo, branch)))

    def _download(self, url: str, dest: Path, cancel: CancelToken | None) -> ArchiveHandle:
        """Stream ``url`` into ``dest``, reading until the declared length arrives."""
        logger.debug("Downloading %s to %s", url, dest)
        try:
            with self._client.stream("GET", url) as resp:
                self.rate_limiter.observe(resp.headers)
                if not resp.is_success:
                    raise TransportError(f"HTTP {resp.status_code} {resp.reason_phrase}", uri=url)
                expected = _content_length(resp)
                written = 0
                with open(dest, "wb") as f:
                    for chunk in resp.iter_bytes(DOWNLOAD_CHUNK_SIZE):
                        if cancel is not None:
                            cancel.check(url)
                        f.write(chunk)
                        written += len(chunk)
                # Content-Length counts encoded bytes, so only identity bodies are comparable
                encoding = resp.headers.get("content-encoding", "identity").strip().lower()
                if encoding != "identity":
                    expected = None
        except httpx.HTTPError as e:
            raise TransportError(str(e) or type(e).__name__, uri=url) from e
        except OSError as e:
            raise TransportError(f"could not save download: {e}", uri=url) from e

        if expected is not None and written < expected:
            raise TransportError(f"incomplete download: received {written} of {expected} bytes", uri=url)
        if written == 0:
            raise ContentError("empty response body", uri=url)
        return ArchiveHandle(path=dest, size_bytes=written)

    def fetch_and_install(
        self,
        owner: str,
        repo: str,
        branch: BranchRecord | str,
        module_dir: Path,
        cancel: CancelToken | None = None,
    ) -> InstallResult:
        """Download a branch's zipball and install it as ``module_dir/repo``.

        The archive must hold a module descriptor in its root folder. The
        temporary download is removed whether or not the install succeeds.
        Returns an InstallResult that is truthy on success and carries the
        ModuleRecord to persist.
        """
        if isinstance(branch, str):
            branch = BranchRecord(name=branch)
        if not branch.commit_url:
            branch = replace(branch, commit_url=self.commit_url(owner, repo, branch.name))
        url = self.archive_url(owner, repo, branch.name)
        result = InstallResult(ok=False)

        try:
            fd, tmp = tempfile.mkstemp(prefix=f"{repo}-", suffix=".zip", dir=self.temp_dir)
            os.close(fd)
        except OSError as e:
            error = InstallError(f"cannot create temporary file: {e}", uri=url)
            self._record(error)
            result.errors.append(error)
            return result
        tmp_path = Path(tmp)

        try:
            handle = self._download(url, tmp_path, cancel)
            entries = archive_entries(handle.path)
            if not is_valid_module(entries):
                raise ValidationError(
                    f"{owner}/{repo} (branch {branch.name}) is not a valid module: "
                    f"no {DESCRIPTOR_EXTENSION} file in the archive root"
                )
            result.path = self.installer.install(
                handle.path, root_entry(entries), Path(module_dir), repo, cancel
            )
            last_commit = self.get_last_commit(branch) or datetime.now(timezone.utc)
            result.record = ModuleRecord(name=repo, location=owner, branch=branch.name, last_commit=last_commit)
            result.ok = True
        except FetchError as e:
            if e.uri is None:
                e.uri = url
            self._record(e)
            result.errors.append(e)
        finally:
            try:
                tmp_path.unlink(missing_ok=True)
            except OSError as e:
                error = CleanupError(f"could not remove temporary file {tmp_path}: {e}")
                self._record(error)
                result.errors.append(error)

        return result

    def close(self):
        self._client.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()


# Client instances keyed by config
_clients: dict[tuple, RepoClient] = {}


def get_repo_client(api_url: str | None = None, cache_dir: Path | None = None) -> RepoClient:
    """Get or create a RepoClient with the given configuration."""
    key = (api_url, str(cache_dir) if cache_dir else None)
    if key not in _clients:
        _clients[key] = RepoClient(api_url=api_url, cache_dir=cache_dir)
    return _clients[key]
