"""Module-level API and runtime configuration."""

from __future__ import annotations

import zipfile
from pathlib import Path

import pytest
import zipkit
from zipkit import runtime
from zipkit.core.config import ConfigResolver
from zipkit.core.logging import VerbosityLevel, get_verbosity


def test_module_functions_round_trip(sample_tree: Path, out_dir: Path, tmp_path: Path) -> None:
    archive = out_dir / "site.zip"

    packed = zipkit.pack(sample_tree, archive)
    assert packed.files_packed == 3
    assert zipkit.is_valid_zip(archive)

    names: list[str] = []
    zipkit.walk(archive, lambda entry, err: err or names.append(entry.name))
    assert sorted(names) == ["files/01.txt", "files/sub/02.txt", "files/sub/deeper/03.bin"]
    assert sorted(i.filename for i in zipkit.iter_entries(archive)) == sorted(names)

    result = zipkit.extract(archive, tmp_path / "restored")
    assert result.files_extracted == 3
    assert (tmp_path / "restored" / "files" / "sub" / "02.txt").read_text() == "two"


def test_pack_excluding_module_function(sample_tree: Path, out_dir: Path) -> None:
    result = zipkit.pack_excluding(sample_tree, out_dir / "a.zip", [r"\.bin$"])

    assert result.files_packed == 2
    assert result.excluded == ("files/sub/deeper/03.bin",)
    with pytest.raises(AttributeError):
        result.excluded.append("other")  # type: ignore[attr-defined]


def test_errors_are_exported(tmp_path: Path) -> None:
    with pytest.raises(zipkit.NotFoundError):
        zipkit.pack(tmp_path / "nope", tmp_path / "a.zip")
    with pytest.raises(zipkit.ZipKitError):
        zipkit.pack_flat("", tmp_path / "a.zip")


def test_configure_applies_policy_and_replaces_service(tmp_path: Path) -> None:
    resolver = ConfigResolver(
        cli_args={"logging": {"level": "quiet"}, "archives": {"compression": "stored"}},
        user_config_path=tmp_path / "u.yaml",
        system_config_path=tmp_path / "s.yaml",
    )

    svc = zipkit.configure(resolver, diagnostics_sink=False)

    assert get_verbosity() == VerbosityLevel.QUIET
    assert runtime.get_service() is svc
    assert svc.compression == 0


def test_get_service_is_cached_until_reset() -> None:
    first = runtime.get_service()
    assert runtime.get_service() is first

    runtime.reset()
    assert runtime.get_service() is not first


def test_default_calls_write_nothing_to_console(
    sample_tree: Path, out_dir: Path, tmp_path: Path, capsys
) -> None:
    archive = out_dir / "quiet.zip"
    zipkit.pack(sample_tree, archive)
    zipkit.extract(archive, tmp_path / "restored")
    zipkit.walk(archive, lambda entry, err: err)
    zipkit.is_valid_zip(archive)
    with pytest.raises(zipkit.NotFoundError):
        zipkit.pack(tmp_path / "missing", out_dir / "b.zip")

    captured = capsys.readouterr()
    assert captured.out == ""
    assert captured.err == ""


def test_default_service_ignores_environment_and_config_files(
    sample_tree: Path, out_dir: Path, tmp_path: Path, monkeypatch
) -> None:
    home = tmp_path / "home"
    (home / ".config" / "zipkit").mkdir(parents=True)
    (home / ".config" / "zipkit" / "config.yaml").write_text("archives: [broken\n")
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.setenv("ZIPKIT_ARCHIVES_COMPRESSION", "bzip2")

    result = zipkit.pack(sample_tree, out_dir / "a.zip")

    assert result.files_packed == 3
    assert runtime.get_service().compression == zipfile.ZIP_DEFLATED


def test_configure_with_resolver_reads_environment(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.setenv("ZIPKIT_ARCHIVES_COMPRESSION", "stored")
    resolver = ConfigResolver(
        user_config_path=tmp_path / "u.yaml",
        system_config_path=tmp_path / "s.yaml",
    )

    svc = zipkit.configure(resolver, diagnostics_sink=False)

    assert svc.compression == zipfile.ZIP_STORED
