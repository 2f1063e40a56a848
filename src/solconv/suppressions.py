from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from typing import Literal

from solconv.config import ALL_RULES, RULE_IDS
from solconv.engine.types import Comment, Finding, SyntaxItem

logger = logging.getLogger(__name__)

DirectiveKind = Literal["next-item", "next-line", "line", "start", "end", "file"]

FILE_KEYWORD = "ignore-src-file"

_MARKER_RE = re.compile(r"^solconv:\s*(?P<rest>.*)$", re.IGNORECASE | re.DOTALL)
_PLAIN_KINDS: dict[str, DirectiveKind] = {
    "ignore-next-item": "next-item",
    "ignore-next-line": "next-line",
    "ignore-line": "line",
    "ignore-start": "start",
    "ignore-end": "end",
    FILE_KEYWORD: "file",
}
# Longest first: "next-line" must win over "line".
_INFIX_KINDS: tuple[DirectiveKind, ...] = ("next-item", "next-line", "start", "line", "file", "end")


class DirectiveError(ValueError):
    """Raised for a malformed or unbalanced inline directive."""

    def __init__(self, message: str, line: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.line = line


@dataclass(frozen=True, slots=True)
class Directive:
    kind: DirectiveKind
    rule: str | None  # None = all rules
    line: int
    end_line: int


@dataclass(frozen=True, slots=True)
class SuppressionRegion:
    """
    A stretch of a file in which findings (of one rule, or of all rules) are dropped.

    Regions built from `ignore-next-item` carry the item's columns so that a
    finding sharing the first or last line with other code is only covered
    when it falls inside the item itself.
    """

    rule: str | None
    start_line: int
    end_line: int
    start_col: int | None = None
    end_col: int | None = None
    whole_file: bool = False

    def covers(self, finding: Finding) -> bool:
        if self.rule is not None and finding.rule_id != self.rule:
            return False
        if self.whole_file:
            return True

        line = finding.location.start_line
        if line is None or line < self.start_line or line > self.end_line:
            return False
        col = finding.location.start_col
        if col is None:
            return True
        if self.start_col is not None and line == self.start_line and col < self.start_col:
            return False
        if self.end_col is not None and line == self.end_line and col > self.end_col:
            return False
        return True


def parse_directive(comment: Comment) -> Directive | None:
    """
    Interpret a comment as an inline directive.

    Returns None for ordinary comments. A comment that carries the `solconv:`
    marker but no valid directive raises `DirectiveError`.

    Supported forms (case-insensitive):
    - `solconv: ignore-next-line` (all rules)
    - `solconv: ignore-next-line src` (one rule, suffix form)
    - `solconv: ignore-src-next-line` (one rule, infix form)
    """

    match = _MARKER_RE.match(comment.body)
    if not match:
        return None

    words = match.group("rest").split()
    if not words:
        raise DirectiveError("Invalid inline config item: missing directive", comment.line)

    keyword = words[0].lower()
    kind, rule = _parse_keyword(keyword, line=comment.line)

    extra = words[1:]
    if extra:
        if rule is not None or len(extra) > 1:
            raise DirectiveError(f"Invalid inline config item: {' '.join(words)}", comment.line)
        rule = _parse_rule(extra[0], line=comment.line)

    return Directive(kind=kind, rule=rule, line=comment.line, end_line=comment.end_line)


def _parse_keyword(keyword: str, *, line: int) -> tuple[DirectiveKind, str | None]:
    plain = _PLAIN_KINDS.get(keyword)
    if plain is not None:
        return plain, None

    if keyword.startswith("ignore-"):
        scoped = keyword[len("ignore-") :]
        for kind in _INFIX_KINDS:
            suffix = f"-{kind}"
            if scoped.endswith(suffix) and len(scoped) > len(suffix):
                return kind, _parse_rule(scoped[: -len(suffix)], line=line)

    raise DirectiveError(f"Invalid inline config item: {keyword}", line)


def _parse_rule(value: str, *, line: int) -> str | None:
    normalized = value.strip().lower()
    if normalized == ALL_RULES:
        return None
    if normalized not in RULE_IDS:
        raise DirectiveError(f"Invalid inline config item: unknown rule {value!r}", line)
    return normalized


def resolve_regions(comments: Iterable[Comment], items: Sequence[SyntaxItem]) -> tuple[SuppressionRegion, ...]:
    """
    Resolve a file's directives into suppression regions.

    Comments are scanned in source order with two states: outside a block
    and inside an `ignore-start` block. Blocks do not nest; an `ignore-end`
    must name the same rule as the `ignore-start` it closes.
    """

    regions: list[SuppressionRegion] = []
    open_block: Directive | None = None

    for comment in sorted(comments, key=lambda c: (c.line, c.col)):
        directive = parse_directive(comment)
        if directive is None:
            continue

        if directive.kind == "start":
            if open_block is not None:
                raise DirectiveError(
                    f"ignore-start inside the block opened on line {open_block.line}", directive.line
                )
            open_block = directive
            continue

        if directive.kind == "end":
            if open_block is None:
                raise DirectiveError("ignore-end without a matching ignore-start", directive.line)
            if directive.rule != open_block.rule:
                raise DirectiveError(
                    f"ignore-end for {_describe(directive.rule)} does not match the ignore-start for "
                    f"{_describe(open_block.rule)} on line {open_block.line}",
                    directive.line,
                )
            regions.append(
                SuppressionRegion(rule=open_block.rule, start_line=open_block.line, end_line=directive.end_line)
            )
            open_block = None
            continue

        region = _single_region(directive, items)
        if region is not None:
            regions.append(region)

    if open_block is not None:
        raise DirectiveError("ignore-start is never closed by ignore-end", open_block.line)

    return tuple(regions)


def _single_region(directive: Directive, items: Sequence[SyntaxItem]) -> SuppressionRegion | None:
    if directive.kind == "file":
        return SuppressionRegion(rule=directive.rule, start_line=1, end_line=directive.line, whole_file=True)
    if directive.kind == "line":
        return SuppressionRegion(rule=directive.rule, start_line=directive.line, end_line=directive.line)
    if directive.kind == "next-line":
        target = directive.end_line + 1
        return SuppressionRegion(rule=directive.rule, start_line=target, end_line=target)

    item = next_item(items, after_line=directive.end_line)
    if item is None:
        logger.debug("ignore-next-item on line %s has no following item", directive.line)
        return None
    span = item.span
    return SuppressionRegion(
        rule=directive.rule,
        start_line=span.start_line,
        end_line=span.end_line,
        start_col=span.start_col,
        end_col=span.end_col,
    )


def next_item(items: Sequence[SyntaxItem], *, after_line: int) -> SyntaxItem | None:
    """The first item starting after `after_line`; the outermost one when several start together."""

    candidates = [item for item in items if item.span.start_line > after_line]
    if not candidates:
        return None
    return min(
        candidates,
        key=lambda item: (
            item.span.start_line,
            item.span.start_col,
            -item.span.end_line,
            -item.span.end_col,
        ),
    )


def _describe(rule: str | None) -> str:
    return "all rules" if rule is None else f"rule {rule!r}"
