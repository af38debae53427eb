"""Pytest configuration and fixtures."""

import sys
from pathlib import Path

import pytest

# Add src to path so 'zipkit.*' imports work without an install.
repo_root = Path(__file__).parent.parent
sys.path.insert(0, str(repo_root / "src"))


@pytest.fixture(autouse=True)
def _isolate_global_state():
    """Keep bus subscribers, verbosity and the default service from leaking between tests."""
    from zipkit import runtime
    from zipkit.core.diagnostics import uninstall_jsonl_sink
    from zipkit.core.events import get_event_bus
    from zipkit.core.log_bus import get_log_bus
    from zipkit.core.logging import VerbosityLevel, set_colors, set_log_sink, set_verbosity

    uninstall_jsonl_sink()
    get_event_bus().clear()
    get_log_bus().clear()
    runtime.reset()
    yield
    uninstall_jsonl_sink()
    set_log_sink(None)
    get_event_bus().clear()
    get_log_bus().clear()
    set_verbosity(VerbosityLevel.NORMAL)
    set_colors(True)
    runtime.reset()


@pytest.fixture
def resolver(tmp_path):
    """ConfigResolver that never reads the real user/system config files."""
    from zipkit.core.config import ConfigResolver

    return ConfigResolver(
        cli_args={},
        user_config_path=tmp_path / "no-user-config.yaml",
        system_config_path=tmp_path / "no-system-config.yaml",
    )


@pytest.fixture
def service(resolver):
    """ArchiveService built from the isolated resolver."""
    from zipkit.archive import ArchiveService

    return ArchiveService(resolver)


@pytest.fixture
def sample_tree(tmp_path) -> Path:
    """Directory 'files' with nested content.

    Layout:
        files/01.txt
        files/sub/02.txt
        files/sub/deeper/03.bin
    """
    root = tmp_path / "files"
    (root / "sub" / "deeper").mkdir(parents=True)
    (root / "01.txt").write_text("one")
    (root / "sub" / "02.txt").write_text("two")
    (root / "sub" / "deeper" / "03.bin").write_bytes(bytes(range(256)) * 40)
    return root


@pytest.fixture
def out_dir(tmp_path) -> Path:
    out = tmp_path / "output"
    out.mkdir()
    return out
