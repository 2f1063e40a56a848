from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from solconv.config import SolconvConfig
from solconv.engine.types import Comment, ParseError, SyntaxItem
from solconv.filekinds import FileKind


@dataclass(frozen=True, slots=True)
class ProjectContext:
    project_root: Path
    scan_path: Path
    files: tuple[Path, ...]
    config: SolconvConfig


@dataclass(frozen=True, slots=True)
class FileContext:
    project_root: Path
    path: Path
    relative_path: str
    kind: FileKind
    text: str
    lines: tuple[str, ...]
    items: tuple[SyntaxItem, ...] = ()
    comments: tuple[Comment, ...] = ()
    parse_error: ParseError | None = None

    def items_of(self, *kinds: str) -> list[SyntaxItem]:
        return [item for item in self.items if item.kind in kinds]
