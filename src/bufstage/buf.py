"""
Thin wrappers around the ``buf`` CLI.

Public API:
    ls_files(proto_path)                                   → list of proto files
    export_all(buf_yaml, export_dir)                       → exports every dep
    export_all_from_workspace(buf_work, export_dir, root)  → exports every member's deps

All invocations are synchronous and fail fast: the first failing ``buf``
process raises :class:`~bufstage.errors.ExternalToolError` and nothing after
it runs. Files already written to ``export_dir`` are left in place.
"""

import re
import subprocess
from pathlib import Path
from typing import List, Optional

from eliot import start_action

from bufstage.config import get_buf_binary
from bufstage.errors import ExternalToolError
from bufstage.manifest import BUF_YAML, BufWorkYaml, BufYaml

_NEWLINE: re.Pattern[str] = re.compile(r"\r?\n")
_TRAILING_NEWLINE: re.Pattern[str] = re.compile(r"\r?\n\Z")


def _describe(cmd: List[str]) -> str:
    return f"`{' '.join(cmd)}'"


def _run_buf(cmd: List[str]) -> subprocess.CompletedProcess:
    """Run a buf command to completion, raising ExternalToolError on spawn failure or non-zero exit."""
    try:
        proc = subprocess.run(cmd, capture_output=True, stdin=subprocess.DEVNULL)
    except OSError as exc:
        raise ExternalToolError(f"failed to execute {_describe(cmd)}", exc) from exc

    if proc.returncode != 0:
        stderr = proc.stderr.decode("utf-8", errors="replace")
        raise ExternalToolError(
            f"failed to execute {_describe(cmd)}, returned status code "
            f"{proc.returncode}: {stderr.strip()}",
            returncode=proc.returncode,
            stderr=stderr,
        )
    return proc


def ls_files(proto_path: Path, buf: Optional[str] = None) -> List[str]:
    """
    List the module's own proto files with ``buf ls-files``.

    Each output line is returned verbatim, in the order buf reports them.
    Exactly one trailing line terminator is dropped, so empty output yields
    an empty list rather than a single empty entry.
    """
    cmd = [buf or get_buf_binary(), "ls-files", str(proto_path)]
    with start_action(action_type="buf_ls_files", proto_path=str(proto_path)) as action:
        proc = _run_buf(cmd)
        try:
            output = proc.stdout.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise ExternalToolError(f"failed to decode {_describe(cmd)} output", exc) from exc

        protos = _split_output(output)
        action.add_success_fields(count=len(protos))
        return protos


def _split_output(output: str) -> List[str]:
    """Drop one trailing line terminator, then split on line boundaries."""
    output = _TRAILING_NEWLINE.sub("", output, count=1)
    if not output:
        return []
    return _NEWLINE.split(output)


def export_all(buf_yaml: BufYaml, export_dir: Path, buf: Optional[str] = None) -> None:
    """Run ``buf export <dep> -o <export_dir>`` for every dependency, in declared order."""
    binary = buf or get_buf_binary()
    with start_action(
        action_type="buf_export_all",
        export_dir=str(export_dir),
        deps=list(buf_yaml.deps),
    ):
        for dep in buf_yaml.deps:
            cmd = [binary, "export", dep, "-o", str(export_dir)]
            with start_action(action_type="buf_export", dep=dep):
                _run_buf(cmd)


def export_all_from_workspace(
    buf_work: BufWorkYaml,
    export_dir: Path,
    workspace_dir: Path,
    buf: Optional[str] = None,
) -> List[Path]:
    """
    Export the dependencies of every workspace member into one shared directory.

    Members are processed in declared order; a failing member aborts the rest.

    Returns:
        The member directories (``workspace_dir / member``) in declared order.
    """
    workspace_dir = Path(workspace_dir)
    member_dirs: List[Path] = []
    with start_action(
        action_type="buf_export_workspace",
        workspace_dir=str(workspace_dir),
        directories=list(buf_work.directories),
    ):
        for directory in buf_work.directories:
            member_dir = workspace_dir / directory
            member_dirs.append(member_dir)

            buf_yaml = BufYaml.load(member_dir / BUF_YAML)
            export_all(buf_yaml, export_dir, buf=buf)
    return member_dirs
