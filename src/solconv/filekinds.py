from __future__ import annotations

from typing import Literal

from solconv.config import CheckPaths

FileKind = Literal["src", "test", "handler", "test_helper", "script", "script_helper", "other"]

SOLIDITY_SUFFIX = ".sol"
TEST_SUFFIX = ".t.sol"
SCRIPT_SUFFIX = ".s.sol"


def classify(relative_path: str, paths: CheckPaths) -> FileKind:
    """
    Classify a project-relative POSIX path by the role it plays in a Foundry project.

    Test and script files are recognized by their `.t.sol` / `.s.sol` suffix
    inside the configured test and script roots; other Solidity files in those
    roots are helpers. Handlers (invariant-test actors) live in a `handlers/`
    directory or are named `*Handler.sol`.
    """

    rel = relative_path.replace("\\", "/")
    if rel.startswith("./"):
        rel = rel[2:]
    if not rel.endswith(SOLIDITY_SUFFIX):
        return "other"

    name = rel.rsplit("/", 1)[-1]
    if _is_under(rel, paths.test):
        if name.endswith(TEST_SUFFIX):
            return "test"
        parts = rel.split("/")[:-1]
        if "handlers" in parts or "handler" in parts or name.endswith("Handler.sol"):
            return "handler"
        return "test_helper"
    if _is_under(rel, paths.script):
        if name.endswith(SCRIPT_SUFFIX):
            return "script"
        return "script_helper"
    if _is_under(rel, paths.src):
        return "src"
    return "other"


def _is_under(rel: str, root: str) -> bool:
    if root in {"", "."}:
        return True
    return rel.startswith(root.rstrip("/") + "/")
