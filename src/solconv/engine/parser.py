"""
Solidity syntax adapter.

Walks the tree-sitter Solidity tree and keeps what the validators look at:
contracts, functions, state variables, events, errors, structs, enums,
imports, parameters and local variable declarations, plus every comment.

Positions are 1-based, count characters (not bytes) and refer to the
unmodified source.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass

from tree_sitter import Node

from solconv.engine import tree_sitter
from solconv.engine.types import Comment, ItemKind, ParseError, Span, SyntaxItem, Visibility


@dataclass(frozen=True, slots=True)
class ParsedSource:
    items: tuple[SyntaxItem, ...]
    comments: tuple[Comment, ...]
    error: ParseError | None = None


_CONTRACT_NODES = {
    "contract_declaration": "contract",
    "interface_declaration": "interface",
    "library_declaration": "library",
}
_FUNCTION_NODES = {
    "function_definition": "function",
    "constructor_definition": "constructor",
    "modifier_definition": "modifier",
    "fallback_receive_definition": "fallback",
}
_VARIABLE_NODES = frozenset({"state_variable_declaration", "constant_variable_declaration"})
_NAMED_NODES: dict[str, ItemKind] = {
    "event_definition": "event",
    "error_declaration": "error",
    "struct_declaration": "struct",
    "enum_declaration": "enum",
}
_VISIBILITY: dict[str, Visibility] = {
    "public": "public",
    "external": "external",
    "internal": "internal",
    "private": "private",
}
_DATA_LOCATIONS = frozenset({"memory", "storage", "calldata"})


def parse_source(text: str) -> ParsedSource:
    """Parse `text`; syntax problems are reported in `ParsedSource.error`, never raised."""

    source = text.encode("utf-8", errors="replace")
    tree = tree_sitter.parse(source)
    if tree is None:
        return ParsedSource(items=(), comments=(), error=ParseError(message="Solidity grammar is not available"))

    root = tree.root_node
    if root.has_error:
        return ParsedSource(items=(), comments=(), error=_first_error(root, source))

    adapter = _Adapter(source)
    adapter.visit_members(root, contract=None)
    adapter.collect_comments(root)
    items = sorted(adapter.items, key=lambda item: (item.span.start_line, item.span.start_col))
    comments = sorted(adapter.comments, key=lambda c: (c.line, c.col))
    return ParsedSource(items=tuple(items), comments=tuple(comments))


def _first_error(root: Node, source: bytes) -> ParseError:
    stack = [root]
    while stack:
        node = stack.pop()
        line = node.start_point[0] + 1
        if node.is_missing:
            return ParseError(message=f"missing {node.type!r}", line=line)
        if node.type == "ERROR":
            snippet = source[node.start_byte : node.end_byte].decode("utf-8", errors="replace")
            snippet = snippet.strip().splitlines()[0][:40] if snippet.strip() else ""
            return ParseError(message=f"syntax error near {snippet!r}", line=line)
        stack.extend(reversed([child for child in node.children if child.has_error or child.is_missing]))
    return ParseError(message="syntax error", line=None)


def _unquote(value: str) -> str:
    if len(value) >= 2 and value[0] == value[-1] and value[0] in "\"'":
        return value[1:-1]
    return value


def _direct(node: Node, node_type: str) -> list[Node]:
    return [child for child in node.children if child.type == node_type]


def _name_node(node: Node) -> Node | None:
    named = node.child_by_field_name("name")
    if named is not None:
        return named
    identifiers = _direct(node, "identifier")
    return identifiers[-1] if identifiers else None


def _data_location(node: Node) -> str | None:
    for child in node.children:
        if child.type in _DATA_LOCATIONS:
            return child.type
    return None


def _descendants(node: Node, node_type: str) -> Iterator[Node]:
    stack = list(reversed(node.children))
    while stack:
        current = stack.pop()
        if current.type == node_type:
            yield current
        stack.extend(reversed(current.children))


class _Adapter:
    def __init__(self, source: bytes) -> None:
        self.source = source
        self.lines = source.split(b"\n")
        self.items: list[SyntaxItem] = []
        self.comments: list[Comment] = []

    # -- positions ---------------------------------------------------------

    def _char_col(self, row: int, byte_col: int) -> int:
        line = self.lines[row] if row < len(self.lines) else b""
        return len(line[:byte_col].decode("utf-8", errors="replace"))

    def _span(self, node: Node) -> Span:
        start_row, start_col = node.start_point
        end_row, end_col = node.end_point
        return Span(
            start_line=start_row + 1,
            start_col=self._char_col(start_row, start_col) + 1,
            end_line=end_row + 1,
            end_col=self._char_col(end_row, end_col),
        )

    def _text(self, node: Node) -> str:
        return self.source[node.start_byte : node.end_byte].decode("utf-8", errors="replace")

    # -- declarations ------------------------------------------------------

    def visit_members(self, node: Node, *, contract: str | None) -> None:
        for child in node.children:
            node_type = child.type
            if node_type in _CONTRACT_NODES:
                self._contract(child)
            elif node_type == "import_directive":
                self._import(child)
            elif node_type in _FUNCTION_NODES:
                self._function(child, contract)
            elif node_type in _VARIABLE_NODES:
                self._variable(child, contract)
            elif node_type in _NAMED_NODES:
                self._named(child, _NAMED_NODES[node_type], contract)

    def _contract(self, node: Node) -> None:
        name_node = _name_node(node)
        name = self._text(name_node) if name_node is not None else ""
        flavor = _CONTRACT_NODES[node.type]
        if flavor == "contract" and _direct(node, "abstract"):
            flavor = "abstract"

        self.items.append(
            SyntaxItem(kind="contract", name=name, span=self._span(node), detail=flavor, has_body=True)
        )
        body = node.child_by_field_name("body")
        if body is None:
            bodies = _direct(node, "contract_body")
            body = bodies[0] if bodies else None
        if body is not None:
            self.visit_members(body, contract=name)

    def _function(self, node: Node, contract: str | None) -> None:
        keyword = _FUNCTION_NODES[node.type]
        if node.type == "fallback_receive_definition" and _direct(node, "receive"):
            keyword = "receive"

        name = keyword
        if keyword in {"function", "modifier"}:
            name_node = node.child_by_field_name("name")
            name = self._text(name_node) if name_node is not None else ""

        visibility: Visibility | None = None
        for child in _direct(node, "visibility"):
            visibility = _VISIBILITY.get(self._text(child).strip())
        if visibility is None and keyword == "function" and contract is not None:
            visibility = "public"

        body = node.child_by_field_name("body")
        if body is None:
            bodies = _direct(node, "function_body")
            body = bodies[0] if bodies else None

        self.items.append(
            SyntaxItem(
                kind="function",
                name=name,
                span=self._span(node),
                visibility=visibility,
                contract=contract,
                detail=keyword,
                has_body=body is not None,
            )
        )

        # Return parameters live under `return_type_definition` and are not collected.
        for param in _direct(node, "parameter"):
            self._declaration(param, "parameter", contract)
        if body is not None:
            for local in _descendants(body, "variable_declaration"):
                self._declaration(local, "local", contract)

    def _declaration(self, node: Node, kind: ItemKind, contract: str | None) -> None:
        identifiers = _direct(node, "identifier")
        if not identifiers:
            return
        self.items.append(
            SyntaxItem(
                kind=kind,
                name=self._text(identifiers[-1]),
                span=self._span(node),
                contract=contract,
                detail=_data_location(node),
            )
        )

    def _variable(self, node: Node, contract: str | None) -> None:
        name_node = _name_node(node)
        if name_node is None:
            return

        visibility: Visibility | None = None
        for child in _direct(node, "visibility"):
            visibility = _VISIBILITY.get(self._text(child).strip())
        constant = bool(_direct(node, "constant"))
        immutable = bool(_direct(node, "immutable"))

        value: str | None = None
        children = node.children
        for idx, child in enumerate(children):
            if child.type != "=":
                continue
            rest = [c for c in children[idx + 1 :] if c.type not in {";", "comment"}]
            if rest:
                value = self.source[rest[0].start_byte : rest[-1].end_byte].decode("utf-8", errors="replace").strip()
            break

        kind: ItemKind = "constant" if constant else ("immutable" if immutable else "variable")
        self.items.append(
            SyntaxItem(
                kind=kind,
                name=self._text(name_node),
                span=self._span(node),
                visibility=visibility,
                constant=constant,
                immutable=immutable,
                value=value,
                contract=contract,
            )
        )

    def _named(self, node: Node, kind: ItemKind, contract: str | None) -> None:
        name_node = _name_node(node)
        if name_node is None:
            return
        self.items.append(SyntaxItem(kind=kind, name=self._text(name_node), span=self._span(node), contract=contract))

    def _import(self, node: Node) -> None:
        leaves = [leaf for leaf in self._leaves(node) if leaf.type not in {"import", ";"}]
        types = [leaf.type for leaf in leaves]
        strings = [leaf for leaf in leaves if leaf.type == "string"]
        path = _unquote(self._text(strings[0])) if strings else ""
        identifiers = [self._text(leaf) for leaf in leaves if leaf.type == "identifier"]

        symbols: tuple[str, ...]
        if "{" in types:
            form = "named"
            names: list[str] = []
            current: str | None = None
            for leaf in leaves[types.index("{") + 1 :]:
                if leaf.type in {",", "}"}:
                    if current is not None:
                        names.append(current)
                    current = None
                    if leaf.type == "}":
                        break
                elif leaf.type == "identifier":
                    current = self._text(leaf)
            symbols = tuple(names)
        elif "*" in types:
            form = "wildcard"
            symbols = tuple(identifiers[-1:])
        elif types and types[0] == "string":
            form = "alias" if "as" in types else "bare"
            symbols = tuple(identifiers[-1:])
        else:
            form = "named"
            symbols = tuple(identifiers[-1:])

        self.items.append(
            SyntaxItem(kind="import", name=path, span=self._span(node), detail=form, symbols=symbols)
        )

    def _leaves(self, node: Node) -> Iterator[Node]:
        for child in node.children:
            if child.type == "comment":
                continue
            if child.type in {"identifier", "string"} or child.child_count == 0:
                yield child
            else:
                yield from self._leaves(child)

    # -- comments ----------------------------------------------------------

    def collect_comments(self, root: Node) -> None:
        for node in _descendants(root, "comment"):
            row, byte_col = node.start_point
            text = self._text(node)
            if text.startswith("//"):
                text = text.rstrip("\r")
            line = self.lines[row] if row < len(self.lines) else b""
            self.comments.append(
                Comment(
                    text=text,
                    line=row + 1,
                    end_line=node.end_point[0] + 1,
                    col=self._char_col(row, byte_col) + 1,
                    trailing=bool(line[:byte_col].strip()),
                )
            )
