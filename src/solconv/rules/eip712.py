from __future__ import annotations

import re

from solconv.engine.context import FileContext
from solconv.engine.types import Finding, SyntaxItem
from solconv.rules.base import BaseRule, RuleMeta, loc_from_item
from solconv.rules.utils import code_without_comments, split_top_level_commas

_TYPEHASH_SUFFIX = "_TYPEHASH"
_TYPEHASH_PREFIX = "TYPEHASH_"
_KECCAK_LITERAL_RE = re.compile(r"""^keccak256\s*\(\s*(?P<q>["'])(?P<type>[^"'\n]*)(?P=q)\s*\)$""")


class TypehashConstruction(BaseRule):
    """
    EIP-712 type hashes.

    A `*_TYPEHASH` (or `TYPEHASH_*`) variable must be initialized as
    `keccak256("Type(field,...)")` from a single string literal, and each
    `abi.encode(TYPEHASH, ...)` must pass one value per declared field.
    """

    meta = RuleMeta(
        rule_id="eip712",
        title="EIP-712 type hashes",
        description="Type hashes are keccak256 of a literal type string and are encoded with a matching field count.",
        applies_to=frozenset({"src"}),
    )

    def check_file(self, ctx: FileContext) -> list[Finding]:
        typehashes = [item for item in ctx.items_of("variable", "constant", "immutable") if _is_typehash(item.name)]
        if not typehashes:
            return []

        out: list[Finding] = []
        code = code_without_comments(ctx)
        for item in typehashes:
            location = loc_from_item(ctx, item)
            type_string = _literal_type_string(item)
            if type_string is None:
                out.append(
                    self._finding(
                        message=(
                            f"Typehash '{item.name}' for struct '{_struct_name(item.name)}' must be "
                            "initialized as keccak256 of a string literal"
                        ),
                        location=location,
                    )
                )
                continue

            expected = type_field_count(type_string)
            for used in abi_encode_arities(code, item.name):
                if used == expected:
                    continue
                out.append(
                    self._finding(
                        message=(
                            f"EIP712 typehash '{item.name}' parameter mismatch: typehash defines {expected} "
                            f"parameters but abi.encode usage uses {used} parameters"
                        ),
                        location=location,
                    )
                )
        return out


def _is_typehash(name: str) -> bool:
    return name.endswith(_TYPEHASH_SUFFIX) or name.startswith(_TYPEHASH_PREFIX)


def _struct_name(name: str) -> str:
    if name.endswith(_TYPEHASH_SUFFIX):
        return name.removesuffix(_TYPEHASH_SUFFIX)
    return name.removeprefix(_TYPEHASH_PREFIX)


def _literal_type_string(item: SyntaxItem) -> str | None:
    if item.value is None:
        return None
    match = _KECCAK_LITERAL_RE.match(item.value.strip())
    if match is None:
        return None
    return match.group("type")


def type_field_count(type_string: str) -> int:
    """Number of top-level fields of the primary type in an EIP-712 type string."""

    start = type_string.find("(")
    if start == -1:
        return 0
    depth = 0
    for idx in range(start, len(type_string)):
        ch = type_string[idx]
        if ch == "(":
            depth += 1
        elif ch == ")":
            depth -= 1
            if depth == 0:
                inner = type_string[start + 1 : idx]
                if not inner.strip():
                    return 0
                return len(split_top_level_commas(inner))
    return 0


def abi_encode_arities(code: str, typehash: str) -> list[int]:
    """For each `abi.encode(<typehash>, ...)` call, the number of values encoded after the hash."""

    pattern = re.compile(rf"abi\s*\.\s*encode\s*\(\s*{re.escape(typehash)}\s*,")
    arities: list[int] = []
    for match in pattern.finditer(code):
        open_idx = code.index("(", match.start())
        depth = 0
        for idx in range(open_idx, len(code)):
            ch = code[idx]
            if ch == "(":
                depth += 1
            elif ch == ")":
                depth -= 1
                if depth == 0:
                    args = split_top_level_commas(code[open_idx + 1 : idx])
                    arities.append(len(args) - 1)
                    break
    return arities


def builtin_eip712_rules() -> list[BaseRule]:
    return [TypehashConstruction()]
