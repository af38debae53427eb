"""Unit tests for packing (ArchiveService.pack*, DirectoryPacker)."""

from __future__ import annotations

import os
import time
import zipfile
from pathlib import Path

import pytest
from zipkit.archive import ArchiveService, BaseDirPolicy, DirectoryPacker, PackRequest
from zipkit.archive import packer as packer_mod
from zipkit.archive.types import OpenOutcome, OpenResult
from zipkit.core.config import ConfigResolver
from zipkit.core.errors import (
    ArchiveIOError,
    InvalidArgumentError,
    InvalidDestinationError,
    NotFoundError,
    ZipKitError,
)

needs_symlink = pytest.mark.skipif(not hasattr(os, "symlink"), reason="symlinks unavailable")


def _names(archive: Path) -> list[str]:
    with zipfile.ZipFile(archive) as zf:
        return zf.namelist()


@pytest.mark.parametrize(
    ("source", "archive", "expected"),
    [
        ("", "", InvalidArgumentError),
        ("   ", "test.zip", InvalidArgumentError),
        (".", "  ", InvalidArgumentError),
        (".notfound", "test.zip", NotFoundError),
        (".", ".nothere/test.zip", InvalidDestinationError),
    ],
)
def test_pack_rejects_invalid_arguments(
    service: ArchiveService, tmp_path: Path, monkeypatch, source, archive, expected
) -> None:
    monkeypatch.chdir(tmp_path)
    with pytest.raises(expected):
        service.pack(source, archive)
    with pytest.raises(ZipKitError):
        service.pack_flat(source, archive)


def test_pack_preserve_prefixes_base_dir(
    service: ArchiveService, sample_tree: Path, out_dir: Path
) -> None:
    archive = out_dir / "preserve.zip"

    result = service.pack(sample_tree, archive)

    assert sorted(_names(archive)) == [
        "files/01.txt",
        "files/sub/02.txt",
        "files/sub/deeper/03.bin",
    ]
    assert result.files_packed == 3
    assert result.total_bytes == 3 + 3 + 256 * 40


def test_pack_flat_drops_base_dir(
    service: ArchiveService, sample_tree: Path, out_dir: Path
) -> None:
    archive = out_dir / "flat.zip"

    service.pack_flat(sample_tree, archive)

    assert sorted(_names(archive)) == ["01.txt", "sub/02.txt", "sub/deeper/03.bin"]


def test_pack_does_not_emit_directory_entries(
    service: ArchiveService, sample_tree: Path, out_dir: Path
) -> None:
    (sample_tree / "empty").mkdir()
    archive = out_dir / "a.zip"

    service.pack(sample_tree, archive)

    assert all(not n.endswith("/") for n in _names(archive))


def test_pack_trims_whitespace_around_paths(
    service: ArchiveService, sample_tree: Path, out_dir: Path
) -> None:
    archive = out_dir / "trim.zip"

    service.pack_flat(f"  {sample_tree}  ", f" {archive}\n")

    assert archive.exists()
    assert "01.txt" in _names(archive)


@pytest.mark.parametrize("flat", [True, False])
def test_pack_single_file_uses_base_name(
    service: ArchiveService, sample_tree: Path, out_dir: Path, flat: bool
) -> None:
    archive = out_dir / "single.zip"
    src = sample_tree / "sub" / "02.txt"

    if flat:
        service.pack_flat(src, archive)
    else:
        service.pack(src, archive)

    assert _names(archive) == ["02.txt"]
    with zipfile.ZipFile(archive) as zf:
        assert zf.read("02.txt") == b"two"


def test_pack_excluding_filters_matching_files(
    service: ArchiveService, tmp_path: Path, out_dir: Path
) -> None:
    src = tmp_path / "src"
    src.mkdir()
    (src / "a.txt").write_text("a")
    (src / "b.tmp").write_text("b")
    archive = out_dir / "ex.zip"

    result = service.pack_excluding(src, archive, [r".*\.tmp$"])

    assert _names(archive) == ["src/a.txt"]
    assert result.excluded == ("src/b.tmp",)
    assert result.files_packed == 1


def test_pack_excluding_matches_internal_path(
    service: ArchiveService, sample_tree: Path, out_dir: Path
) -> None:
    archive = out_dir / "ex.zip"

    service.pack_excluding(sample_tree, archive, ["^files/sub/"])

    assert _names(archive) == ["files/01.txt"]


def test_pack_excluding_ignores_empty_patterns(
    service: ArchiveService, sample_tree: Path, out_dir: Path
) -> None:
    archive = out_dir / "ex.zip"

    service.pack_excluding(sample_tree, archive, ["", r"\.bin$"])

    assert sorted(_names(archive)) == ["files/01.txt", "files/sub/02.txt"]


def test_pack_excluding_rejects_bad_pattern_before_writing(
    service: ArchiveService, sample_tree: Path, out_dir: Path
) -> None:
    archive = out_dir / "bad.zip"

    with pytest.raises(InvalidArgumentError):
        service.pack_excluding(sample_tree, archive, ["(unclosed"])

    assert not archive.exists()


def test_pack_skips_archive_inside_source(service: ArchiveService, sample_tree: Path) -> None:
    archive = sample_tree / "self.zip"

    service.pack(sample_tree, archive)

    names = _names(archive)
    assert "files/self.zip" not in names
    assert sorted(names) == ["files/01.txt", "files/sub/02.txt", "files/sub/deeper/03.bin"]


@needs_symlink
def test_pack_skips_broken_symlink(
    service: ArchiveService, sample_tree: Path, out_dir: Path
) -> None:
    dangling = sample_tree / "dangling.txt"
    os.symlink(sample_tree / "missing.txt", dangling)
    archive = out_dir / "links.zip"

    result = service.pack(sample_tree, archive)

    assert "files/dangling.txt" not in _names(archive)
    assert result.skipped_links == (dangling.as_posix(),)
    assert result.files_packed == 3


@needs_symlink
def test_pack_follows_symlink_to_file(
    service: ArchiveService, sample_tree: Path, out_dir: Path
) -> None:
    os.symlink(sample_tree / "01.txt", sample_tree / "link.txt")
    archive = out_dir / "links.zip"

    service.pack_flat(sample_tree, archive)

    with zipfile.ZipFile(archive) as zf:
        assert zf.read("link.txt") == b"one"
        assert zf.getinfo("link.txt").file_size == 3


def test_pack_keeps_content_and_mtime(
    service: ArchiveService, sample_tree: Path, out_dir: Path
) -> None:
    src = sample_tree / "sub" / "deeper" / "03.bin"
    stamp = time.mktime((2020, 1, 2, 3, 4, 6, 0, 0, -1))
    os.utime(src, (stamp, stamp))
    archive = out_dir / "meta.zip"

    service.pack_flat(sample_tree, archive)

    with zipfile.ZipFile(archive) as zf:
        info = zf.getinfo("sub/deeper/03.bin")
        assert info.date_time == (2020, 1, 2, 3, 4, 6)
        assert info.file_size == 256 * 40
        assert info.compress_type == zipfile.ZIP_DEFLATED
        assert zf.read(info) == src.read_bytes()


@pytest.mark.parametrize(
    ("stamp", "expected"),
    [
        (0, (1980, 1, 1, 0, 0, 0)),
        (4_420_000_000, (2107, 12, 31, 23, 59, 58)),
    ],
)
def test_pack_clamps_mtime_to_zip_date_range(
    service: ArchiveService, tmp_path: Path, out_dir: Path, stamp: int, expected: tuple
) -> None:
    src = tmp_path / "src"
    src.mkdir()
    (src / "x.txt").write_text("x")
    os.utime(src / "x.txt", (stamp, stamp))
    archive = out_dir / "dated.zip"

    result = service.pack(src, archive)

    assert result.files_packed == 1
    with zipfile.ZipFile(archive) as zf:
        assert zf.getinfo("src/x.txt").date_time == expected
        assert zf.read("src/x.txt") == b"x"


def test_pack_uses_configured_compression(
    tmp_path: Path, sample_tree: Path, out_dir: Path
) -> None:
    resolver = ConfigResolver(
        cli_args={"archives": {"compression": "stored"}},
        user_config_path=tmp_path / "u.yaml",
        system_config_path=tmp_path / "s.yaml",
    )
    archive = out_dir / "stored.zip"

    ArchiveService(resolver).pack(sample_tree, archive)

    with zipfile.ZipFile(archive) as zf:
        assert {i.compress_type for i in zf.infolist()} == {zipfile.ZIP_STORED}


def test_pack_truncates_existing_archive(
    service: ArchiveService, sample_tree: Path, out_dir: Path
) -> None:
    archive = out_dir / "again.zip"
    service.pack(sample_tree, archive)
    (sample_tree / "01.txt").unlink()

    service.pack(sample_tree, archive)

    assert sorted(_names(archive)) == ["files/sub/02.txt", "files/sub/deeper/03.bin"]


def test_pack_open_failure_aborts_and_leaves_partial_archive(
    service: ArchiveService, sample_tree: Path, out_dir: Path, monkeypatch
) -> None:
    def _fail(path: str) -> OpenResult:
        return OpenResult(OpenOutcome.FAILED, error=PermissionError(13, "denied", path))

    monkeypatch.setattr(packer_mod, "open_source", _fail)
    archive = out_dir / "partial.zip"

    with pytest.raises(ArchiveIOError) as excinfo:
        service.pack(sample_tree, archive)

    assert isinstance(excinfo.value.__cause__, PermissionError)
    assert archive.exists()


def test_open_source_distinguishes_outcomes(tmp_path: Path) -> None:
    regular = tmp_path / "r.txt"
    regular.write_text("r")

    opened = packer_mod.open_source(str(regular))
    assert opened.outcome == OpenOutcome.OPENED
    assert opened.handle is not None
    opened.handle.close()

    failed = packer_mod.open_source(str(tmp_path / "absent.txt"))
    assert failed.outcome == OpenOutcome.FAILED
    assert isinstance(failed.error, FileNotFoundError)

    if hasattr(os, "symlink"):
        link = tmp_path / "broken"
        os.symlink(tmp_path / "nowhere", link)
        skipped = packer_mod.open_source(str(link))
        assert skipped.outcome == OpenOutcome.SKIPPED_BROKEN_LINK
        assert skipped.handle is None
        assert skipped.error is None


def test_iter_records_reports_internal_names(sample_tree: Path, out_dir: Path) -> None:
    request = PackRequest(
        source_path=str(sample_tree),
        archive_path=str(out_dir / "x.zip"),
        policy=BaseDirPolicy.FLAT,
    )

    records = list(DirectoryPacker(request).iter_records())

    by_name = {r.internal_name: r for r in records}
    assert set(by_name) == {"01.txt", "sub/02.txt", "sub/deeper/03.bin"}
    assert by_name["01.txt"].info.size == 3
    assert by_name["01.txt"].info.is_regular
    assert not by_name["01.txt"].info.is_symlink
    assert Path(by_name["sub/02.txt"].source_path) == sample_tree / "sub" / "02.txt"


def test_internal_name_policy() -> None:
    assert packer_mod.internal_name("/a/src/x/y.txt", "/a/src", "src") == "src/x/y.txt"
    assert packer_mod.internal_name("/a/src/x/y.txt", "/a/src", "") == "x/y.txt"
