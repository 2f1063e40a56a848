from __future__ import annotations

import re

from solconv.engine.context import FileContext
from solconv.engine.types import Finding
from solconv.rules.base import ALL_KINDS, BaseRule, RuleMeta, loc_from_item

_CONSTANT_NAME_RE = re.compile(r"^[A-Z0-9_]+$")
_TEST_NAME_RE = re.compile(r"^test(Fork)?(Fuzz)?(_Revert(If|When|On))?_(\w+)*$")
_TEST_NAME_SHAPE = "test(Fork)?(Fuzz)?(_Revert(If|When|On))?_Description"


class ConstantNames(BaseRule):
    meta = RuleMeta(
        rule_id="constant",
        title="Constant and immutable casing",
        description="Constants and immutables must be named in ALL_CAPS with underscores.",
        applies_to=ALL_KINDS,
    )

    def check_file(self, ctx: FileContext) -> list[Finding]:
        out: list[Finding] = []
        for item in ctx.items_of("constant", "immutable"):
            if _CONSTANT_NAME_RE.match(item.name):
                continue
            label = "Constant" if item.kind == "constant" else "Immutable"
            out.append(
                self._finding(
                    message=f"{label} '{item.name}' should be ALL_CAPS",
                    location=loc_from_item(ctx, item),
                )
            )
        return out


class TestNames(BaseRule):
    """
    Test functions follow `test[Fork][Fuzz][_Revert(If|When|On)]_Description`.

    Only public/external functions whose name starts with `test` are checked,
    so `setUp`, `invariant_*` and helpers are left alone.
    """

    __test__ = False  # keep pytest from collecting this class

    meta = RuleMeta(
        rule_id="test",
        title="Test names",
        description="Test function names must describe the scenario they cover.",
        applies_to=frozenset({"test"}),
    )

    def check_file(self, ctx: FileContext) -> list[Finding]:
        out: list[Finding] = []
        for item in ctx.items_of("function"):
            if item.detail != "function" or item.visibility not in {"public", "external"}:
                continue
            if not item.name.startswith("test"):
                continue
            if _TEST_NAME_RE.match(item.name):
                continue
            out.append(
                self._finding(
                    message=f"Invalid test name '{item.name}', expected {_TEST_NAME_SHAPE}",
                    location=loc_from_item(ctx, item),
                )
            )
        return out


class ErrorPrefix(BaseRule):
    meta = RuleMeta(
        rule_id="error",
        title="Error and event prefixes",
        description="Custom errors and events declared in a contract are prefixed with `ContractName_`.",
        applies_to=frozenset({"src", "test", "handler"}),
    )

    def check_file(self, ctx: FileContext) -> list[Finding]:
        out: list[Finding] = []
        for item in ctx.items_of("error", "event"):
            if item.contract is None:
                continue
            prefix = f"{item.contract}_"
            if item.name.startswith(prefix):
                continue
            label = "Error" if item.kind == "error" else "Event"
            out.append(
                self._finding(
                    message=f"{label} '{item.name}' should be prefixed with '{prefix}'",
                    location=loc_from_item(ctx, item),
                )
            )
        return out


class VariableNames(BaseRule):
    """
    Leading-underscore conventions for variables.

    - State variables, constants and immutables declared in a contract never
      start with `_`.
    - Parameters and locals start with `_`, unless they are `storage` references.
      Parameters of functions without a body count too.
    """

    meta = RuleMeta(
        rule_id="variable",
        title="Variable names",
        description="State variables have no leading underscore; parameters and locals do, except storage references.",
        applies_to=frozenset({"src", "test", "handler", "script"}),
    )

    def check_file(self, ctx: FileContext) -> list[Finding]:
        out: list[Finding] = []
        for item in ctx.items:
            if item.kind in {"variable", "constant", "immutable"}:
                if item.contract is not None and item.name.startswith("_"):
                    out.append(
                        self._finding(
                            message=f"State variable '{item.name}' should NOT have underscore prefix",
                            location=loc_from_item(ctx, item),
                        )
                    )
                continue

            if item.kind not in {"parameter", "local"}:
                continue

            label = "Parameter" if item.kind == "parameter" else "Local variable"
            if item.detail == "storage":
                if item.name.startswith("_"):
                    storage_label = "Storage parameter" if item.kind == "parameter" else "Storage variable"
                    out.append(
                        self._finding(
                            message=f"{storage_label} '{item.name}' should NOT have underscore prefix",
                            location=loc_from_item(ctx, item),
                        )
                    )
            elif not item.name.startswith("_"):
                out.append(
                    self._finding(
                        message=f"{label} '{item.name}' should have underscore prefix",
                        location=loc_from_item(ctx, item),
                    )
                )
        return out


def builtin_naming_rules() -> list[BaseRule]:
    return [ConstantNames(), TestNames(), ErrorPrefix(), VariableNames()]
