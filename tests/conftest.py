#!/usr/bin/env python3
"""
Pytest configuration and shared fixtures for bufstage tests.

The buf CLI and protoc are replaced by small executable Python scripts so the
real subprocess code paths run without either tool installed.

Fake buf:
  - ``export <dep> -o <dir>`` writes ``<dir>/<last segment of dep>/<last segment>.proto``.
    References containing "broken" fail with exit code 1.
  - ``ls-files <path>`` prints ``<path>/.ls-files`` verbatim when present,
    otherwise every ``*.proto`` under ``<path>`` (sorted), one per line.
    A ``<path>/.ls-files-fail`` marker makes it exit with code 2.
  Every invocation is appended to the file named by FAKE_BUF_LOG.

Fake protoc:
  Writes its argv as JSON to FAKE_PROTOC_LOG and exits with FAKE_PROTOC_EXIT.
"""

import json
import shutil
import stat
import sys
import tempfile
from pathlib import Path
from typing import List

import pytest
from pycomfort.logging import to_nice_stdout


FAKE_BUF_SOURCE = '''
import os
import sys
from pathlib import Path

args = sys.argv[1:]
log = os.environ.get("FAKE_BUF_LOG")
if log:
    with open(log, "a", encoding="utf-8") as f:
        f.write(" ".join(args) + "\\n")

if args[0] == "export":
    dep, out_dir = args[1], Path(args[3])
    if "broken" in dep:
        sys.stderr.write(f"Failure: {dep}: module not found\\n")
        sys.exit(1)
    name = dep.rstrip("/").rsplit("/", 1)[-1]
    target = out_dir / name
    target.mkdir(parents=True, exist_ok=True)
    (target / f"{name}.proto").write_text(f"// exported from {dep}\\n", encoding="utf-8")
elif args[0] == "ls-files":
    root = Path(args[1])
    if (root / ".ls-files-fail").exists():
        sys.stderr.write("Failure: no buf.yaml found\\n")
        sys.exit(2)
    listing = root / ".ls-files"
    if listing.exists():
        sys.stdout.buffer.write(listing.read_bytes())
    else:
        for proto in sorted(root.rglob("*.proto")):
            sys.stdout.write(f"{proto}\\n")
else:
    sys.stderr.write(f"unknown command {args[0]}\\n")
    sys.exit(64)
'''

FAKE_PROTOC_SOURCE = '''
import json
import os
import sys

with open(os.environ["FAKE_PROTOC_LOG"], "w", encoding="utf-8") as f:
    json.dump(sys.argv[1:], f)
code = int(os.environ.get("FAKE_PROTOC_EXIT", "0"))
if code:
    sys.stderr.write("protoc: error: something is wrong\\n")
sys.exit(code)
'''


def _write_script(path: Path, source: str) -> Path:
    path.write_text(f"#!{sys.executable}\n{source}", encoding="utf-8")
    path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return path


@pytest.fixture
def temp_dir():
    """Create a temporary directory for a single test."""
    temp_dir = tempfile.mkdtemp(prefix="bufstage_test_")
    yield Path(temp_dir)
    # Cleanup after test
    shutil.rmtree(temp_dir, ignore_errors=True)


@pytest.fixture
def staging_root(temp_dir: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Redirect staging directories into a per-test root so they can be inspected."""
    root = temp_dir / "staging"
    root.mkdir()
    monkeypatch.setenv("BUFSTAGE_TMPDIR", str(root))
    return root


@pytest.fixture
def buf_log(temp_dir: Path) -> Path:
    return temp_dir / "buf.log"


@pytest.fixture
def fake_buf(temp_dir: Path, buf_log: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Install the fake buf script and point BUFSTAGE_BUF at it."""
    script = _write_script(temp_dir / "buf", FAKE_BUF_SOURCE)
    monkeypatch.setenv("BUFSTAGE_BUF", str(script))
    monkeypatch.setenv("FAKE_BUF_LOG", str(buf_log))
    return script


@pytest.fixture
def fake_protoc(temp_dir: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Install the fake protoc script; returns the path its argv is recorded to."""
    script = _write_script(temp_dir / "protoc", FAKE_PROTOC_SOURCE)
    log = temp_dir / "protoc.json"
    monkeypatch.setenv("BUFSTAGE_PROTOC", str(script))
    monkeypatch.setenv("FAKE_PROTOC_LOG", str(log))
    return log


def buf_calls(buf_log: Path) -> List[str]:
    """Invocations recorded by the fake buf, in order."""
    if not buf_log.exists():
        return []
    return buf_log.read_text(encoding="utf-8").splitlines()


def read_protoc_args(log: Path) -> List[str]:
    return json.loads(log.read_text(encoding="utf-8"))


def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers", "integration: marks tests that need the real buf CLI on PATH"
    )


def pytest_collection_modifyitems(config, items):
    """Skip integration tests when buf is not installed."""
    if shutil.which("buf") is not None:
        return
    skip = pytest.mark.skip(reason="buf CLI not found on PATH")
    for item in items:
        if "integration" in item.keywords:
            item.add_marker(skip)


@pytest.fixture(scope="session", autouse=True)
def enable_eliot_stdout():
    """Ensure Eliot logs are pretty-printed to stdout during the test session."""
    to_nice_stdout()
    yield
