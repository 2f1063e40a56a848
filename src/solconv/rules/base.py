from __future__ import annotations

from abc import ABC
from dataclasses import dataclass

from solconv.engine.context import FileContext
from solconv.engine.types import Finding, Location, SyntaxItem
from solconv.filekinds import FileKind


@dataclass(frozen=True, slots=True)
class RuleMeta:
    rule_id: str
    title: str
    description: str
    applies_to: frozenset[FileKind]


class BaseRule(ABC):
    meta: RuleMeta

    def applies(self, ctx: FileContext) -> bool:
        return ctx.kind in self.meta.applies_to

    def check_file(self, ctx: FileContext) -> list[Finding]:
        return []

    def _finding(self, *, message: str, location: Location) -> Finding:
        return Finding(rule_id=self.meta.rule_id, message=message, location=location)


ALL_KINDS: frozenset[FileKind] = frozenset(
    {"src", "test", "handler", "test_helper", "script", "script_helper", "other"}
)


def loc_from_item(ctx: FileContext, item: SyntaxItem) -> Location:
    span = item.span
    return Location(
        path=ctx.path,
        start_line=span.start_line,
        start_col=span.start_col,
        end_line=span.end_line,
        end_col=span.end_col,
    )


def loc_from_line(ctx: FileContext, *, line: int, col: int | None = 1) -> Location:
    return Location(path=ctx.path, start_line=line, start_col=col)
