from __future__ import annotations

from collections.abc import Iterable, Sequence

from solconv.config import ALL_RULES, OverrideConfig
from solconv.engine.types import Finding
from solconv.suppressions import SuppressionRegion


def filter_findings(
    findings: Iterable[Finding],
    regions: Sequence[SuppressionRegion],
    config: OverrideConfig,
    relative_path: str,
) -> list[Finding]:
    """
    Drop suppressed findings, keeping the survivors in their original order.

    `relative_path` is the file's POSIX path relative to the config directory.
    The first matching source wins: the global ignore list, then a per-file
    override naming the rule (or "all"), then an inline suppression region.
    """

    if config.is_file_ignored(relative_path):
        return []

    ignored_rules = config.ignored_rules(relative_path)
    if ALL_RULES in ignored_rules:
        return []

    kept: list[Finding] = []
    for finding in findings:
        if finding.rule_id in ignored_rules:
            continue
        if any(region.covers(finding) for region in regions):
            continue
        kept.append(finding)
    return kept
