from __future__ import annotations

import re
from collections.abc import Iterable

from solconv.engine.context import FileContext
from solconv.engine.types import Span, SyntaxItem

_IDENT_CHARS = r"A-Za-z0-9_$"


def line_offsets(text: str) -> list[int]:
    offsets = [0]
    offsets.extend(idx + 1 for idx, ch in enumerate(text) if ch == "\n")
    return offsets


def span_offsets(offsets: list[int], span: Span) -> tuple[int, int]:
    start = offsets[span.start_line - 1] + span.start_col - 1
    end = offsets[span.end_line - 1] + span.end_col
    return start, end


def blank_out_spans(text: str, spans: Iterable[tuple[int, int]]) -> str:
    """Replace each `(start, end)` slice with spaces, keeping newlines so positions stay valid."""

    ordered = sorted(spans)
    if not ordered:
        return text
    out: list[str] = []
    cursor = 0
    for start, end in ordered:
        start = max(start, cursor)
        if end <= start:
            continue
        out.append(text[cursor:start])
        out.append("".join("\n" if ch == "\n" else " " for ch in text[start:end]))
        cursor = end
    out.append(text[cursor:])
    return "".join(out)


def code_without_comments(ctx: FileContext, *, also_blank: Iterable[SyntaxItem] = ()) -> str:
    """
    The file text with comments (and optionally some items) blanked out.

    Line and column positions in the result match the original text.
    """

    offsets = line_offsets(ctx.text)
    spans: list[tuple[int, int]] = []
    for comment in ctx.comments:
        start = offsets[comment.line - 1] + comment.col - 1
        spans.append((start, start + len(comment.text)))
    spans.extend(span_offsets(offsets, item.span) for item in also_blank)
    return blank_out_spans(ctx.text, spans)


def uses_identifier(code: str, name: str) -> bool:
    pattern = rf"(?<![{_IDENT_CHARS}]){re.escape(name)}(?![{_IDENT_CHARS}])"
    return re.search(pattern, code) is not None


def split_top_level_commas(text: str) -> list[str]:
    parts: list[str] = []
    depth = 0
    start = 0
    for idx, ch in enumerate(text):
        if ch in "([{":
            depth += 1
        elif ch in ")]}":
            depth = max(depth - 1, 0)
        elif ch == "," and depth == 0:
            parts.append(text[start:idx])
            start = idx + 1
    parts.append(text[start:])
    return parts
