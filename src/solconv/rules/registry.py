from __future__ import annotations

from collections.abc import Mapping
from functools import lru_cache
from types import MappingProxyType

from solconv.rules.base import BaseRule, RuleMeta
from solconv.rules.eip712 import builtin_eip712_rules
from solconv.rules.imports import builtin_import_rules
from solconv.rules.naming import builtin_naming_rules
from solconv.rules.structure import builtin_structure_rules


@lru_cache(maxsize=1)
def builtin_rules() -> tuple[BaseRule, ...]:
    """The fixed rule set, ordered by rule id."""

    rules: list[BaseRule] = []
    rules.extend(builtin_naming_rules())
    rules.extend(builtin_structure_rules())
    rules.extend(builtin_import_rules())
    rules.extend(builtin_eip712_rules())

    by_id: dict[str, BaseRule] = {}
    for rule in rules:
        rule_id = rule.meta.rule_id
        if rule_id != rule_id.strip() or rule_id != rule_id.lower():  # pragma: no cover
            raise RuntimeError(f"Rule id must be canonical lowercase without whitespace: {rule_id!r}")
        if rule_id in by_id:  # pragma: no cover
            raise RuntimeError(f"Duplicate rule id: {rule_id}")
        by_id[rule_id] = rule

    return tuple(by_id[k] for k in sorted(by_id))


def rule_ids() -> set[str]:
    return {r.meta.rule_id for r in builtin_rules()}


@lru_cache(maxsize=1)
def rule_meta_by_id() -> Mapping[str, RuleMeta]:
    return MappingProxyType({r.meta.rule_id: r.meta for r in builtin_rules()})


def rule_by_id(rule_id: str) -> BaseRule | None:
    for rule in builtin_rules():
        if rule.meta.rule_id == rule_id:
            return rule
    return None
