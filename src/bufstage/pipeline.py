"""
Pre-compile orchestration: buf manifests → staged deps → protoc.

Public API:
    compile_from_buf(compiler, config)                          → BuildResult
    compile_from_buf_with_config(compiler, config, buf_config)  → BuildResult
    compile_from_buf_workspace(compiler, config)                → BuildResult
    compile_from_buf_workspace_with_config(...)                 → BuildResult

Each run owns a freshly named staging directory under the system temp root.
It is removed with a non-recursive rmdir when the run ends, whatever the
outcome; if anything is left inside it the directory stays and the run's
result is unaffected.
"""

import logging
import os
import uuid
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, List, Optional

from eliot import start_action
from pydantic import BaseModel, Field

from bufstage import buf, includes
from bufstage.compiler import CompilerConfig, ProtocCompiler, ProtoCompiler
from bufstage.config import BufBuildConfig, get_staging_root
from bufstage.errors import GeneratorError, StagingDirectoryError
from bufstage.manifest import BUF_WORK_YAML, BUF_YAML, BufWorkYaml, BufYaml

logger = logging.getLogger(__name__)


class BuildResult(BaseModel):
    """What a successful run handed to the compiler."""

    protos: List[str] = Field(description="Proto files as reported by `buf ls-files`")
    includes: List[Path] = Field(description="Include paths, in search order")
    export_dir: Path = Field(description="Staging directory used for exported dependencies")
    members: List[Path] = Field(
        default_factory=list, description="Workspace member directories (empty for a single module)"
    )


def tempdir() -> Path:
    """A unique, not yet existing path under the staging root."""
    return get_staging_root() / uuid.uuid4().hex


@contextmanager
def staging_directory() -> Iterator[Path]:
    """Create a per-run staging directory and always try to remove it afterwards."""
    export_dir = tempdir()
    try:
        export_dir.mkdir(parents=True)
    except OSError as exc:
        raise StagingDirectoryError(
            f"failed to create staging directory {str(export_dir)!r}", exc
        ) from exc
    try:
        yield export_dir
    finally:
        # Cleanup only; a non-empty or vanished directory is not an error
        try:
            os.rmdir(export_dir)
        except OSError as exc:
            logger.debug("Staging directory %s not removed: %s", export_dir, exc)


def _run_compiler(
    compiler: ProtoCompiler,
    protos: List[str],
    include_paths: List[Path],
    config: Optional[CompilerConfig],
) -> None:
    try:
        compiler.compile(protos, include_paths, config)
    except GeneratorError:
        raise
    except Exception as exc:
        raise GeneratorError("error running proto compiler", exc) from exc


def compile_from_buf(
    compiler: Optional[ProtoCompiler] = None,
    config: Optional[CompilerConfig] = None,
) -> BuildResult:
    """Compile the buf module in the current directory."""
    return compile_from_buf_with_config(compiler, config, BufBuildConfig())


def compile_from_buf_with_config(
    compiler: Optional[ProtoCompiler],
    config: Optional[CompilerConfig],
    buf_config: BufBuildConfig,
) -> BuildResult:
    """
    Compile a single buf module.

    Steps:
    1. Load <buf_dir>/buf.yaml
    2. `buf export` every dependency into the staging directory
    3. `buf ls-files <buf_dir>`
    4. Include paths: module directory first, then staged dependencies
    5. Hand protos and include paths to the compiler

    Raises the first BufStageError encountered; later steps do not run.
    """
    compiler = compiler or ProtocCompiler()
    buf_dir = buf_config.resolved_buf_dir

    with start_action(action_type="compile_from_buf", buf_dir=str(buf_dir)) as action:
        with staging_directory() as export_dir:
            buf_yaml = BufYaml.load(buf_dir / BUF_YAML)
            buf.export_all(buf_yaml, export_dir)
            protos = buf.ls_files(buf_dir)
            include_paths = includes.for_single_module(buf_dir, export_dir)

            _run_compiler(compiler, protos, include_paths, config)

        action.add_success_fields(proto_count=len(protos))
        return BuildResult(protos=protos, includes=include_paths, export_dir=export_dir)


def compile_from_buf_workspace(
    compiler: Optional[ProtoCompiler] = None,
    config: Optional[CompilerConfig] = None,
) -> BuildResult:
    """Compile the buf workspace in the current directory."""
    return compile_from_buf_workspace_with_config(compiler, config, BufBuildConfig())


def compile_from_buf_workspace_with_config(
    compiler: Optional[ProtoCompiler],
    config: Optional[CompilerConfig],
    buf_config: BufBuildConfig,
) -> BuildResult:
    """
    Compile a buf workspace.

    Every member's dependencies are exported into one shared staging
    directory, member by member. Proto discovery runs once over the whole
    workspace directory. Include paths put the staged dependencies first,
    followed by the member directories in declared order.
    """
    compiler = compiler or ProtocCompiler()
    buf_dir = buf_config.resolved_buf_dir

    with start_action(action_type="compile_from_buf_workspace", buf_dir=str(buf_dir)) as action:
        with staging_directory() as export_dir:
            buf_work = BufWorkYaml.load(buf_dir / BUF_WORK_YAML)
            members = buf.export_all_from_workspace(buf_work, export_dir, buf_dir)
            protos = buf.ls_files(buf_dir)
            include_paths = includes.for_workspace(export_dir, members)

            _run_compiler(compiler, protos, include_paths, config)

        action.add_success_fields(proto_count=len(protos), member_count=len(members))
        return BuildResult(
            protos=protos,
            includes=include_paths,
            export_dir=export_dir,
            members=members,
        )
