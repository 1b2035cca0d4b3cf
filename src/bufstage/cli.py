"""
CLI for bufstage.

Provides Typer commands for compiling a buf module or workspace, listing its
proto files, and showing its declared dependencies.
"""

from pathlib import Path
from typing import List, NoReturn, Optional

import typer
from pycomfort.logging import to_nice_file, to_nice_stdout
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from bufstage.errors import BufStageError
from bufstage.runtime import load_env

app = typer.Typer(
    name="bufstage",
    help="Stage buf dependencies and run protoc with the right include paths.",
    no_args_is_help=True,
)

console = Console()


def _enable_logging(log: bool, name: str) -> None:
    if log:
        to_nice_stdout()
        log_dir = Path("logs")
        log_dir.mkdir(exist_ok=True)
        to_nice_file(log_dir / f"{name}.json", log_dir / f"{name}.log")


def _fail(exc: BufStageError) -> NoReturn:
    console.print("[bold red]Errors:[/bold red]")
    console.print(f"  [red]✗[/red] {escape(str(exc))}")
    console.print()
    raise typer.Exit(1)


@app.callback()
def main() -> None:
    """Load BUFSTAGE_* settings from the nearest .env before any command runs."""
    load_env()


@app.command("compile")
def compile_command(
    buf_dir: Path = typer.Argument(
        Path("."),
        help="Directory holding buf.yaml (or buf.work.yaml with --workspace).",
        exists=True,
        file_okay=False,
        dir_okay=True,
    ),
    workspace: bool = typer.Option(
        False,
        "--workspace", "-w",
        help="Treat BUF_DIR as a buf workspace (buf.work.yaml).",
    ),
    python_out: Optional[Path] = typer.Option(
        None, "--python-out", help="Directory for generated *_pb2.py modules."
    ),
    grpc_python_out: Optional[Path] = typer.Option(
        None, "--grpc-python-out", help="Directory for generated *_pb2_grpc.py modules."
    ),
    pyi_out: Optional[Path] = typer.Option(
        None, "--pyi-out", help="Directory for generated .pyi stubs."
    ),
    protoc: Optional[str] = typer.Option(
        None,
        "--protoc",
        help="Compiler command. Default: BUFSTAGE_PROTOC env var or `protoc`.",
    ),
    extra_args: Optional[List[str]] = typer.Option(
        None, "--protoc-arg", help="Extra argument passed to the compiler (repeatable)."
    ),
    log: bool = typer.Option(False, "--log", help="Pretty-print eliot logs and write them to logs/."),
) -> None:
    """
    Export dependencies, discover protos and run the compiler.

    Examples:

        bufstage compile proto/ --python-out gen/

        bufstage compile . --workspace --protoc "python -m grpc_tools.protoc" \\
            --python-out gen/ --grpc-python-out gen/
    """
    import shlex

    from bufstage.compiler import CompilerConfig, ProtocCompiler
    from bufstage.config import BufBuildConfig
    from bufstage.pipeline import (
        compile_from_buf_with_config,
        compile_from_buf_workspace_with_config,
    )

    _enable_logging(log, "bufstage_compile")

    compiler = ProtocCompiler(shlex.split(protoc) if protoc else None)
    config = CompilerConfig(
        python_out=python_out,
        grpc_python_out=grpc_python_out,
        pyi_out=pyi_out,
        extra_args=extra_args or [],
    )
    buf_config = BufBuildConfig(buf_dir=buf_dir)

    console.print(f"\n[bold]Compiling:[/bold] {buf_dir}")
    console.print(f"[bold]Mode:     [/bold] {'workspace' if workspace else 'module'}")
    console.print(f"[bold]Compiler: [/bold] {' '.join(compiler.command)}\n")

    try:
        if workspace:
            result = compile_from_buf_workspace_with_config(compiler, config, buf_config)
        else:
            result = compile_from_buf_with_config(compiler, config, buf_config)
    except BufStageError as exc:
        _fail(exc)

    table = Table(title="Include Paths")
    table.add_column("#", style="cyan")
    table.add_column("Path", style="green")
    for i, include in enumerate(result.includes, start=1):
        table.add_row(str(i), str(include))
    console.print(table)
    console.print(
        f"\n[bold green]✓ Compiled {len(result.protos)} proto file(s)[/bold green]\n"
    )


@app.command("ls-files")
def ls_files_command(
    proto_path: Path = typer.Argument(Path("."), help="Module or workspace directory."),
) -> None:
    """List the proto files buf reports for PROTO_PATH, one per line."""
    from bufstage.buf import ls_files

    try:
        protos = ls_files(proto_path)
    except BufStageError as exc:
        _fail(exc)

    for proto in protos:
        typer.echo(proto)


@app.command("deps")
def deps_command(
    buf_dir: Path = typer.Argument(
        Path("."),
        help="Directory holding buf.yaml (or buf.work.yaml with --workspace).",
        exists=True,
        file_okay=False,
        dir_okay=True,
    ),
    workspace: bool = typer.Option(
        False,
        "--workspace", "-w",
        help="Treat BUF_DIR as a buf workspace (buf.work.yaml).",
    ),
) -> None:
    """Show the dependency references declared in the manifest(s)."""
    from bufstage.manifest import BUF_WORK_YAML, BUF_YAML, BufWorkYaml, BufYaml

    table = Table(title="Dependencies")
    table.add_column("Module", style="cyan")
    table.add_column("Reference", style="green")

    try:
        if workspace:
            buf_work = BufWorkYaml.load(buf_dir / BUF_WORK_YAML)
            modules = [(d, buf_dir / d / BUF_YAML) for d in buf_work.directories]
        else:
            modules = [(str(buf_dir), buf_dir / BUF_YAML)]
        for name, manifest_path in modules:
            for dep in BufYaml.load(manifest_path).deps:
                table.add_row(name, dep)
    except BufStageError as exc:
        _fail(exc)

    if table.row_count:
        console.print(table)
    else:
        console.print("[yellow]No dependencies declared[/yellow]")
