"""
bufstage: stage buf dependencies for protoc.

Resolves the third-party dependencies declared in buf.yaml (or in every
member of a buf.work.yaml workspace), exports them into a temporary staging
directory with the buf CLI, discovers the module's own proto files and runs
the schema compiler with the right include paths.

Typical use from a build hook:

    from bufstage import CompilerConfig, compile_from_buf

    compile_from_buf(config=CompilerConfig(python_out=Path("gen")))

For workspaces, call ``compile_from_buf_workspace`` instead.
"""

from bufstage.compiler import CompilerConfig, ProtocCompiler, ProtoCompiler
from bufstage.config import BufBuildConfig
from bufstage.errors import (
    BufStageError,
    ExternalToolError,
    GeneratorError,
    ManifestParseError,
    ManifestReadError,
    StagingDirectoryError,
)
from bufstage.manifest import BufWorkYaml, BufYaml
from bufstage.pipeline import (
    BuildResult,
    compile_from_buf,
    compile_from_buf_with_config,
    compile_from_buf_workspace,
    compile_from_buf_workspace_with_config,
)
