"""
Include-path assembly for the downstream compiler.

Order decides import-resolution precedence, and the two layouts differ:
a single module is searched before its staged dependencies, while a
workspace searches staged dependencies before its member sources.
Neither list is deduplicated.
"""

from pathlib import Path
from typing import List, Sequence


def for_single_module(module_dir: Path, export_dir: Path) -> List[Path]:
    return [Path(module_dir), Path(export_dir)]


def for_workspace(export_dir: Path, member_dirs: Sequence[Path]) -> List[Path]:
    return [Path(export_dir), *(Path(d) for d in member_dirs)]
