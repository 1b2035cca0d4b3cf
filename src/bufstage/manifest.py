"""
Pydantic models for buf manifests.

Defines the two documents the pipeline reads:
  - buf.yaml       : a single module, listing third-party ``deps``
  - buf.work.yaml  : a workspace, listing member ``directories``

Only the fields the pipeline consumes are modelled; everything else in the
documents (version, name, lint, breaking, ...) is accepted and ignored.
Optional list fields are normalized to empty lists at load time.
"""

from pathlib import Path
from typing import Any, List, Type, TypeVar

import yaml
from eliot import start_action
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from bufstage.errors import ManifestParseError, ManifestReadError


BUF_YAML: str = "buf.yaml"
BUF_WORK_YAML: str = "buf.work.yaml"

ManifestT = TypeVar("ManifestT", bound="_Manifest")


def _load_document(path: Path, model: Type[ManifestT]) -> ManifestT:
    """Read a YAML manifest from disk and validate it against ``model``."""
    path = Path(path)
    with start_action(action_type="load_manifest", path=str(path), kind=model.__name__) as action:
        try:
            text = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise ManifestReadError(f"failed to read {str(path)!r}", exc) from exc

        try:
            raw = yaml.safe_load(text)
        except yaml.YAMLError as exc:
            raise ManifestParseError(f"failed to deserialize {str(path)!r}", exc) from exc

        if raw is None:
            raise ManifestParseError(f"failed to deserialize {str(path)!r}: document is empty")
        if not isinstance(raw, dict):
            raise ManifestParseError(
                f"failed to deserialize {str(path)!r}: expected a mapping, "
                f"got {type(raw).__name__}"
            )

        try:
            manifest = model.model_validate(raw)
        except ValidationError as exc:
            problems = []
            for err in exc.errors():
                loc = " → ".join(str(x) for x in err["loc"])
                problems.append(f"[{loc}] {err['msg']}")
            raise ManifestParseError(
                f"failed to deserialize {str(path)!r}: {'; '.join(problems)}", exc
            ) from exc

        action.add_success_fields(manifest=manifest.model_dump())
        return manifest


class _Manifest(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")


class BufYaml(_Manifest):
    """Module manifest (buf.yaml)."""

    deps: List[str] = Field(
        default_factory=list,
        description="Opaque dependency references, passed verbatim to `buf export`",
    )

    @field_validator("deps", mode="before")
    @classmethod
    def _none_is_empty(cls, v: Any) -> Any:
        return [] if v is None else v

    @classmethod
    def load(cls, file: Path) -> "BufYaml":
        return _load_document(file, cls)


class BufWorkYaml(_Manifest):
    """Workspace manifest (buf.work.yaml)."""

    directories: List[str] = Field(
        default_factory=list,
        description="Member module directories, relative to the workspace root",
    )

    @field_validator("directories", mode="before")
    @classmethod
    def _none_is_empty(cls, v: Any) -> Any:
        return [] if v is None else v

    @classmethod
    def load(cls, file: Path) -> "BufWorkYaml":
        return _load_document(file, cls)
