from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Literal

ItemKind = Literal[
    "contract",
    "function",
    "variable",
    "constant",
    "immutable",
    "event",
    "error",
    "struct",
    "enum",
    "import",
    "parameter",
    "local",
]
Visibility = Literal["public", "external", "internal", "private"]
FileErrorKind = Literal["parse", "directive"]


@dataclass(frozen=True, slots=True)
class Location:
    path: Path | None = None
    start_line: int | None = None  # 1-based
    start_col: int | None = None  # 1-based
    end_line: int | None = None  # 1-based
    end_col: int | None = None  # 1-based


@dataclass(frozen=True, slots=True)
class Span:
    start_line: int
    start_col: int
    end_line: int
    end_col: int

    def contains(self, line: int, col: int | None = None) -> bool:
        if line < self.start_line or line > self.end_line:
            return False
        if col is None:
            return True
        if line == self.start_line and col < self.start_col:
            return False
        if line == self.end_line and col > self.end_col:
            return False
        return True


@dataclass(frozen=True, slots=True)
class SyntaxItem:
    kind: ItemKind
    name: str
    span: Span
    visibility: Visibility | None = None
    constant: bool = False
    immutable: bool = False
    value: str | None = None
    contract: str | None = None
    detail: str | None = None
    symbols: tuple[str, ...] = ()
    has_body: bool = False


@dataclass(frozen=True, slots=True)
class Comment:
    text: str
    line: int
    end_line: int
    col: int
    trailing: bool = False

    @property
    def body(self) -> str:
        if self.text.startswith("//"):
            return self.text.lstrip("/").strip()
        if self.text.startswith("/*"):
            return self.text[2:].removesuffix("*/").strip().strip("*").strip()
        return self.text.strip()


@dataclass(frozen=True, slots=True)
class ParseError:
    message: str
    line: int | None = None


@dataclass(frozen=True, slots=True)
class Finding:
    rule_id: str
    message: str
    location: Location

    @property
    def line(self) -> int:
        return self.location.start_line or 1


@dataclass(frozen=True, slots=True)
class FileError:
    path: Path
    kind: FileErrorKind
    message: str
    line: int | None = None


@dataclass(frozen=True, slots=True)
class FileResult:
    path: Path
    findings: tuple[Finding, ...] = ()
    errors: tuple[FileError, ...] = ()
    raw_count: int = 0


@dataclass(frozen=True, slots=True)
class CheckReport:
    files_checked: int
    findings: tuple[Finding, ...]
    errors: tuple[FileError, ...] = ()
    counts: Mapping[str, int] = field(default_factory=lambda: MappingProxyType({}))

    @property
    def total(self) -> int:
        return len(self.findings)

    @property
    def ok(self) -> bool:
        return not self.findings and not self.errors
