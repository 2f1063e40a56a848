from __future__ import annotations

from solconv.engine.context import FileContext
from solconv.engine.types import Finding, SyntaxItem
from solconv.rules.base import BaseRule, RuleMeta, loc_from_item, loc_from_line

SPDX_PREFIX = "// SPDX-License-Identifier:"
_SCRIPT_ENTRY = "run"
_SCRIPT_FIXTURE = "setUp"


class SrcConventions(BaseRule):
    """
    Conventions for production sources.

    Internal and private functions start with `_`, and the file opens with an
    SPDX license header before any code.
    """

    meta = RuleMeta(
        rule_id="src",
        title="Source conventions",
        description="Internal/private functions start with `_`; files carry an SPDX license header.",
        applies_to=frozenset({"src"}),
    )

    def check_file(self, ctx: FileContext) -> list[Finding]:
        out: list[Finding] = []
        if not _has_spdx_header(ctx.lines):
            out.append(
                self._finding(
                    message="Missing SPDX-License-Identifier header",
                    location=loc_from_line(ctx, line=1),
                )
            )

        for item in ctx.items_of("function"):
            if item.detail != "function" or item.visibility not in {"internal", "private"}:
                continue
            if item.name.startswith("_"):
                continue
            out.append(
                self._finding(
                    message=f"Invalid src method name '{item.name}', {item.visibility} methods should start with '_'",
                    location=loc_from_item(ctx, item),
                )
            )
        return out


def _has_spdx_header(lines: tuple[str, ...]) -> bool:
    for line in lines:
        stripped = line.strip()
        if not stripped:
            continue
        if not stripped.startswith(("//", "/*", "*")):
            return False
        if stripped.startswith(SPDX_PREFIX):
            return True
    return False


class ScriptEntryPoint(BaseRule):
    """
    Script contracts expose a single `run` entry point.

    `setUp`, the fixture hook `forge script` calls before `run`, may also be
    public or external.
    """

    meta = RuleMeta(
        rule_id="script",
        title="Script entry point",
        description="Each script contract exposes exactly one public/external function, named `run`.",
        applies_to=frozenset({"script"}),
    )

    def check_file(self, ctx: FileContext) -> list[Finding]:
        out: list[Finding] = []
        functions = ctx.items_of("function")
        for contract in ctx.items_of("contract"):
            if contract.detail != "contract":
                continue
            exposed = [fn for fn in functions if _is_exposed_member(fn, contract)]
            entries = [fn for fn in exposed if fn.name == _SCRIPT_ENTRY]
            if len(entries) != 1:
                out.append(
                    self._finding(
                        message=(
                            f"Script '{contract.name}' must have exactly one public `{_SCRIPT_ENTRY}` method "
                            f"(found {len(entries)})"
                        ),
                        location=loc_from_item(ctx, contract),
                    )
                )
            for fn in exposed:
                if fn.name in {_SCRIPT_ENTRY, _SCRIPT_FIXTURE}:
                    continue
                out.append(
                    self._finding(
                        message=(
                            f"Script '{contract.name}' exposes {fn.visibility} function '{fn.name}'; "
                            f"only `{_SCRIPT_ENTRY}` may be public or external"
                        ),
                        location=loc_from_item(ctx, fn),
                    )
                )
        return sorted(out, key=lambda finding: (finding.line, finding.location.start_col or 0))


def _is_exposed_member(fn: SyntaxItem, contract: SyntaxItem) -> bool:
    if fn.contract != contract.name or fn.detail != "function":
        return False
    if not contract.span.contains(fn.span.start_line, fn.span.start_col):
        return False
    return fn.visibility in {"public", "external"}


def builtin_structure_rules() -> list[BaseRule]:
    return [SrcConventions(), ScriptEntryPoint()]
