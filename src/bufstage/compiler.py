"""
Downstream schema compiler.

The pipeline hands its discovered proto files and include paths to any
object implementing :class:`ProtoCompiler`. :class:`ProtocCompiler` is the
bundled implementation: it shells out to ``protoc`` (or
``python -m grpc_tools.protoc``) with one ``-I`` flag per include path.
"""

import subprocess
from pathlib import Path
from typing import List, Optional, Protocol, Sequence

from eliot import start_action
from pydantic import BaseModel, Field

from bufstage.config import get_protoc_command
from bufstage.errors import GeneratorError


class CompilerConfig(BaseModel):
    """Output locations and extra flags for a protoc run."""

    python_out: Optional[Path] = Field(default=None, description="--python_out directory")
    grpc_python_out: Optional[Path] = Field(
        default=None, description="--grpc_python_out directory (grpc_tools.protoc only)"
    )
    pyi_out: Optional[Path] = Field(default=None, description="--pyi_out directory")
    extra_args: List[str] = Field(
        default_factory=list, description="Additional arguments appended before the proto files"
    )

    def output_args(self) -> List[str]:
        args: List[str] = []
        for flag, out_dir in (
            ("--python_out", self.python_out),
            ("--grpc_python_out", self.grpc_python_out),
            ("--pyi_out", self.pyi_out),
        ):
            if out_dir is not None:
                args.append(f"{flag}={out_dir}")
        args.extend(self.extra_args)
        return args

    def ensure_output_dirs(self) -> None:
        for out_dir in (self.python_out, self.grpc_python_out, self.pyi_out):
            if out_dir is not None:
                Path(out_dir).mkdir(parents=True, exist_ok=True)


class ProtoCompiler(Protocol):
    def compile(
        self,
        protos: Sequence[str],
        includes: Sequence[Path],
        config: Optional[CompilerConfig] = None,
    ) -> None: ...


class ProtocCompiler:
    """Runs protoc as a subprocess."""

    def __init__(self, command: Optional[List[str]] = None) -> None:
        self.command = list(command) if command else get_protoc_command()

    def build_command(
        self,
        protos: Sequence[str],
        includes: Sequence[Path],
        config: Optional[CompilerConfig] = None,
    ) -> List[str]:
        config = config or CompilerConfig()
        cmd = list(self.command)
        cmd.extend(f"-I{include}" for include in includes)
        cmd.extend(config.output_args())
        cmd.extend(protos)
        return cmd

    def compile(
        self,
        protos: Sequence[str],
        includes: Sequence[Path],
        config: Optional[CompilerConfig] = None,
    ) -> None:
        config = config or CompilerConfig()
        cmd = self.build_command(protos, includes, config)
        with start_action(
            action_type="protoc_compile",
            command=cmd[: len(self.command)],
            protos=list(protos),
            includes=[str(i) for i in includes],
        ):
            config.ensure_output_dirs()
            try:
                proc = subprocess.run(cmd, capture_output=True, text=True, errors="replace")
            except OSError as exc:
                raise GeneratorError(f"failed to execute {cmd[0]!r}", exc) from exc
            if proc.returncode != 0:
                raise GeneratorError(
                    f"{cmd[0]} returned status code {proc.returncode}: {proc.stderr.strip()}"
                )
