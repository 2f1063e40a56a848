from __future__ import annotations

from solconv.engine.context import FileContext
from solconv.engine.types import Finding
from solconv.rules.base import ALL_KINDS, BaseRule, RuleMeta, loc_from_item
from solconv.rules.utils import code_without_comments, uses_identifier


class ImportStyle(BaseRule):
    """
    Named imports only, and every imported name must be used.

    Wildcard imports (`import * as X from "..."`) pull in an unknown set of
    symbols and are findings on their own. Bare imports (`import "...";`)
    name nothing, so there is nothing to check and they are skipped. Names
    brought in by named or aliased imports are findings when nothing outside
    the import statements refers to them.
    """

    meta = RuleMeta(
        rule_id="import",
        title="Import style",
        description="Use named imports and drop imported symbols that are never used.",
        applies_to=ALL_KINDS,
    )

    def check_file(self, ctx: FileContext) -> list[Finding]:
        imports = ctx.items_of("import")
        if not imports:
            return []

        out: list[Finding] = []
        code = code_without_comments(ctx, also_blank=imports)
        for item in imports:
            location = loc_from_item(ctx, item)
            if item.detail == "wildcard":
                out.append(
                    self._finding(
                        message=f"Wildcard import of '{item.name}', use named imports instead",
                        location=location,
                    )
                )
                continue
            for symbol in item.symbols:
                if not uses_identifier(code, symbol):
                    out.append(self._finding(message=f"Unused import: '{symbol}'", location=location))
        return out


def builtin_import_rules() -> list[BaseRule]:
    return [ImportStyle()]
