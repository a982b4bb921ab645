"""Extract a module archive and swap it into the module directory."""

import logging
import shutil
import tempfile
import uuid
import zipfile
from pathlib import Path

from .cancel import CancelToken
from .errors import InstallError

logger = logging.getLogger(__name__)

# zipfile raises RuntimeError for encrypted members, NotImplementedError for
# unsupported compression
_EXTRACT_ERRORS = (zipfile.BadZipFile, OSError, RuntimeError, NotImplementedError)


def _move(src: Path, dst: Path) -> None:
    src.rename(dst)


class ArchiveInstaller:
    """Installs a validated archive as ``target_parent/module_name``.

    The archive is extracted into a staging folder next to the target so the
    final move is a same-filesystem rename. An existing install is renamed
    to a backup first and only deleted once the new one is in place; if the
    move fails, the backup is put back.
    """

    def install(
        self,
        archive_path: Path,
        root_entry: str,
        target_parent: Path,
        module_name: str,
        cancel: CancelToken | None = None,
    ) -> Path:
        archive_path = Path(archive_path)
        target_parent = Path(target_parent)
        target = target_parent / module_name
        try:
            target_parent.mkdir(parents=True, exist_ok=True)
            staging = Path(tempfile.mkdtemp(prefix=f".{module_name}-staging-", dir=target_parent))
        except OSError as e:
            raise InstallError(f"cannot create staging directory in {target_parent}: {e}") from e

        try:
            self._extract(archive_path, staging, cancel)
            extracted = staging / root_entry if root_entry else None
            if extracted is None or not extracted.is_dir():
                raise InstallError(f"archive root folder {root_entry!r} missing after extraction")
            self._swap(extracted, target)
        finally:
            shutil.rmtree(staging, ignore_errors=True)

        logger.info("Installed %s into %s", archive_path.name, target)
        return target

    def _extract(self, archive_path: Path, staging: Path, cancel: CancelToken | None) -> None:
        base = staging.resolve()
        try:
            with zipfile.ZipFile(archive_path) as zf:
                for info in zf.infolist():
                    if cancel is not None:
                        cancel.check()
                    dest = (base / info.filename).resolve()
                    if dest != base and not dest.is_relative_to(base):
                        raise InstallError(f"archive entry {info.filename!r} escapes the extraction folder")
                    zf.extract(info, base)
        except _EXTRACT_ERRORS as e:
            raise InstallError(f"extracting {archive_path.name} failed: {e}") from e
        logger.debug("Extracted %s to %s", archive_path.name, staging)

    def _swap(self, source: Path, target: Path) -> None:
        backup = None
        if target.exists():
            backup = target.with_name(f".{target.name}.backup-{uuid.uuid4().hex[:8]}")
            try:
                _move(target, backup)
            except OSError as e:
                raise InstallError(f"cannot move existing {target} aside: {e}") from e

        try:
            _move(source, target)
        except OSError as e:
            if backup is None:
                raise InstallError(f"moving module into {target} failed: {e}") from e
            try:
                _move(backup, target)
            except OSError as restore_error:
                raise InstallError(
                    f"moving module into {target} failed ({e}) and the previous version "
                    f"could not be restored ({restore_error}); it was left at {backup}"
                ) from e
            raise InstallError(f"moving module into {target} failed, previous version restored: {e}") from e

        if backup is not None:
            try:
                if backup.is_dir() and not backup.is_symlink():
                    shutil.rmtree(backup)
                else:
                    backup.unlink()
            except OSError as e:
                logger.warning("Could not remove previous version at %s: %s", backup, e)
