"""
Environment-driven settings.

Values are read at call time so a ``.env`` loaded by
:func:`bufstage.runtime.load_env` (or a test's monkeypatch) takes effect.
"""

import os
import shlex
import tempfile
from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel, Field


DEFAULT_BUF = "buf"
DEFAULT_PROTOC = "protoc"


def get_buf_binary() -> str:
    """The buf executable: BUFSTAGE_BUF or ``buf`` from PATH."""
    return os.getenv("BUFSTAGE_BUF") or DEFAULT_BUF


def get_protoc_command() -> List[str]:
    """The compiler command line prefix, shell-split from BUFSTAGE_PROTOC.

    Set it to ``python -m grpc_tools.protoc`` to use the protoc bundled with grpcio-tools.
    """
    return shlex.split(os.getenv("BUFSTAGE_PROTOC") or DEFAULT_PROTOC)


def get_staging_root() -> Path:
    """Parent directory for per-run staging directories."""
    env_root = os.getenv("BUFSTAGE_TMPDIR")
    return Path(env_root) if env_root else Path(tempfile.gettempdir())


class BufBuildConfig(BaseModel):
    """Where the module or workspace lives."""

    buf_dir: Optional[Path] = Field(
        default=None,
        description="Directory holding buf.yaml / buf.work.yaml. Default: current directory.",
    )

    @property
    def resolved_buf_dir(self) -> Path:
        return self.buf_dir if self.buf_dir is not None else Path(".")
