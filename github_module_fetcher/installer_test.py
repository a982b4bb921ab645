"""Unit tests for extracting and swapping module archives into place."""

import zipfile
from pathlib import Path

import pytest

from . import installer as installer_module
from .cancel import CancelToken
from .errors import CancelledError, InstallError
from .installer import ArchiveInstaller

ROOT = "example-demo-module-1a2b3c4"


def _make_zip(path: Path, files: dict[str, bytes], root: str = ROOT) -> Path:
    with zipfile.ZipFile(path, "w") as zf:
        zf.writestr(f"{root}/", b"")
        for name, data in files.items():
            zf.writestr(f"{root}/{name}", data)
    return path


def describe_ArchiveInstaller():
    @pytest.fixture
    def modules(tmp_path: Path) -> Path:
        d = tmp_path / "modules"
        d.mkdir()
        return d

    @pytest.fixture
    def archive(tmp_path: Path) -> Path:
        return _make_zip(
            tmp_path / "demo.zip",
            {"demo-module.psd1": b"@{ ModuleVersion = '2.0' }", "lib/helpers.ps1": b"# helpers"},
        )

    def _previous_version(modules: Path) -> Path:
        old = modules / "demo-module"
        old.mkdir()
        (old / "demo-module.psd1").write_text("@{ ModuleVersion = '1.0' }")
        (old / "obsolete.ps1").write_text("# gone in 2.0")
        return old

    def it_installs_under_the_module_name(archive: Path, modules: Path):
        target = ArchiveInstaller().install(archive, ROOT, modules, "demo-module")

        assert target == modules / "demo-module"
        assert (target / "demo-module.psd1").read_bytes() == b"@{ ModuleVersion = '2.0' }"
        assert (target / "lib" / "helpers.ps1").exists()

    def it_creates_the_module_directory(archive: Path, tmp_path: Path):
        target = ArchiveInstaller().install(archive, ROOT, tmp_path / "new" / "modules", "demo-module")

        assert (target / "demo-module.psd1").exists()

    def it_replaces_an_existing_install_without_merging(archive: Path, modules: Path):
        _previous_version(modules)

        target = ArchiveInstaller().install(archive, ROOT, modules, "demo-module")

        assert sorted(p.name for p in target.iterdir()) == ["demo-module.psd1", "lib"]
        assert "2.0" in (target / "demo-module.psd1").read_text()

    def it_leaves_no_staging_or_backup_folders(archive: Path, modules: Path):
        _previous_version(modules)

        ArchiveInstaller().install(archive, ROOT, modules, "demo-module")

        assert [p.name for p in modules.iterdir()] == ["demo-module"]

    def it_replaces_a_file_in_the_way(archive: Path, modules: Path):
        (modules / "demo-module").write_text("not a module")

        target = ArchiveInstaller().install(archive, ROOT, modules, "demo-module")

        assert target.is_dir()
        assert (target / "demo-module.psd1").exists()
        assert [p.name for p in modules.iterdir()] == ["demo-module"]

    def it_keeps_the_existing_install_when_extraction_fails(modules: Path, tmp_path: Path):
        _previous_version(modules)
        broken = tmp_path / "broken.zip"
        broken.write_bytes(b"PK\x03\x04 truncated")

        with pytest.raises(InstallError):
            ArchiveInstaller().install(broken, ROOT, modules, "demo-module")

        assert (modules / "demo-module" / "obsolete.ps1").exists()
        assert [p.name for p in modules.iterdir()] == ["demo-module"]

    def it_fails_when_the_root_folder_is_missing(archive: Path, modules: Path):
        with pytest.raises(InstallError, match="missing"):
            ArchiveInstaller().install(archive, "some-other-root", modules, "demo-module")

        assert list(modules.iterdir()) == []

    def it_rejects_entries_that_escape_the_staging_folder(tmp_path: Path, modules: Path):
        evil = tmp_path / "evil.zip"
        with zipfile.ZipFile(evil, "w") as zf:
            zf.writestr(f"{ROOT}/demo-module.psd1", b"@{}")
            zf.writestr("../../escaped.txt", b"gotcha")

        with pytest.raises(InstallError, match="escapes"):
            ArchiveInstaller().install(evil, ROOT, modules, "demo-module")

        assert not (tmp_path / "escaped.txt").exists()
        assert list(modules.iterdir()) == []

    def it_restores_the_previous_version_when_the_move_fails(
        archive: Path, modules: Path, monkeypatch: pytest.MonkeyPatch
    ):
        _previous_version(modules)
        real_move = installer_module._move

        def failing_move(src: Path, dst: Path):
            if "staging" in str(src):
                raise OSError("no space left on device")
            real_move(src, dst)

        monkeypatch.setattr(installer_module, "_move", failing_move)

        with pytest.raises(InstallError, match="restored"):
            ArchiveInstaller().install(archive, ROOT, modules, "demo-module")

        assert (modules / "demo-module" / "obsolete.ps1").exists()
        assert [p.name for p in modules.iterdir()] == ["demo-module"]

    def it_stops_when_cancelled(archive: Path, modules: Path):
        token = CancelToken()
        token.cancel()

        with pytest.raises(CancelledError):
            ArchiveInstaller().install(archive, ROOT, modules, "demo-module", cancel=token)

        assert list(modules.iterdir()) == []
