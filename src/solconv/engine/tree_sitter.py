from __future__ import annotations

import logging
import threading
from functools import lru_cache

from tree_sitter import Language, Parser, Tree
from tree_sitter_language_pack import get_language

logger = logging.getLogger(__name__)

SOLIDITY = "solidity"


class TreeSitterError(RuntimeError):
    """Raised when tree-sitter cannot load the Solidity grammar or parse source."""


@lru_cache(maxsize=4)
def _get_language(language: str) -> Language:
    try:
        return get_language(language)  # type: ignore[arg-type]
    except (LookupError, ValueError, RuntimeError, OSError) as exc:
        raise TreeSitterError(f"tree-sitter language not available: {language!r}") from exc


_PARSER_LOCAL = threading.local()


def _get_parser(language: str) -> Parser:
    """
    Return a per-thread Parser instance for the requested language.

    tree-sitter Parser objects are not thread-safe; files are parsed from a
    thread pool, so every worker thread gets its own Parser.
    """

    parsers: dict[str, Parser] | None = getattr(_PARSER_LOCAL, "parsers", None)
    if parsers is None:
        parsers = {}
        _PARSER_LOCAL.parsers = parsers

    parser = parsers.get(language)
    if parser is not None:
        return parser

    parser = Parser(_get_language(language))
    parsers[language] = parser
    return parser


def parse(source: bytes, *, language: str = SOLIDITY) -> Tree | None:
    """
    Parse source bytes with tree-sitter.

    Returns None when the grammar cannot be loaded or parsing fails
    unexpectedly; syntax errors in the source still produce a tree.
    """

    try:
        return _get_parser(language).parse(source)
    except (TreeSitterError, ValueError, TypeError, RuntimeError) as exc:
        logger.warning("tree-sitter could not parse %s source: %s", language, exc)
        return None
