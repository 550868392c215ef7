"""Top-level declaration parsing of existing TypeScript files.

Only top-level statements matter for reconciliation, so the parser reads
the tree-sitter root's direct children and keeps each statement's
original text.
"""
from typing import List, Optional, Tuple

import tree_sitter_typescript as tstypescript
from tree_sitter import Language, Node, Parser

from normalized_query.generators.query_gen.types import Declaration, DeclarationKind

TS_LANGUAGE = Language(tstypescript.language_typescript())

_FUNCTION_NODES = {"function_declaration", "function_signature", "generator_function_declaration"}
_TYPE_NODES = {
    "interface_declaration",
    "type_alias_declaration",
    "enum_declaration",
    "class_declaration",
    "abstract_class_declaration",
}
_VARIABLE_NODES = {"lexical_declaration", "variable_declaration"}


class SourceParseError(ValueError):
    """The existing file is not valid TypeScript."""


def _node_name(node: Optional[Node], source: bytes) -> Optional[str]:
    if node is None:
        return None
    return source[node.start_byte:node.end_byte].decode("utf-8")


def _classify(node: Node, source: bytes) -> Tuple[DeclarationKind, Optional[str]]:
    if node.type == "import_statement":
        return DeclarationKind.IMPORT, None
    if node.type == "comment":
        return DeclarationKind.COMMENT, None
    if node.type == "expression_statement":
        # fooEntity.define({...}); is named after its callee
        expression = node.named_children[0] if node.named_children else None
        if expression is not None and expression.type == "call_expression":
            callee = expression.child_by_field_name("function")
            if callee is not None and callee.type == "member_expression":
                return DeclarationKind.OTHER, _node_name(callee, source)
        return DeclarationKind.OTHER, None

    target = node
    if node.type == "export_statement":
        target = node.child_by_field_name("declaration")
        if target is None:
            # export { a, b } / export * from '...'
            return DeclarationKind.OTHER, None

    if target.type in _VARIABLE_NODES:
        for child in target.named_children:
            if child.type == "variable_declarator":
                return DeclarationKind.VARIABLE, _node_name(child.child_by_field_name("name"), source)
        return DeclarationKind.VARIABLE, None
    if target.type in _FUNCTION_NODES:
        return DeclarationKind.FUNCTION, _node_name(target.child_by_field_name("name"), source)
    if target.type in _TYPE_NODES:
        return DeclarationKind.TYPE, _node_name(target.child_by_field_name("name"), source)
    return DeclarationKind.OTHER, None


def parse_declarations(content: str) -> List[Declaration]:
    """Split TypeScript source into its top-level declarations.

    Raises:
        SourceParseError: If the source contains syntax errors.
    """
    source = content.encode("utf-8")
    tree = Parser(TS_LANGUAGE).parse(source)
    root = tree.root_node
    if root.has_error:
        raise SourceParseError("existing content contains syntax errors")

    declarations: List[Declaration] = []
    for node in root.children:
        text = source[node.start_byte:node.end_byte].decode("utf-8").strip()
        if not text:
            continue
        kind, name = _classify(node, source)
        declarations.append(Declaration(text=text, kind=kind, name=name))
    return declarations


def _separator(previous: Declaration, current: Declaration) -> str:
    if previous.kind == DeclarationKind.COMMENT:
        return "\n"
    if previous.kind == DeclarationKind.IMPORT and current.kind == DeclarationKind.IMPORT:
        return "\n"
    return "\n\n"


def render_declarations(declarations: List[Declaration]) -> str:
    """Print declarations back to file content, ending with a newline."""
    if not declarations:
        return ""
    parts = [declarations[0].text]
    for previous, current in zip(declarations, declarations[1:]):
        parts.append(_separator(previous, current))
        parts.append(current.text)
    return "".join(parts) + "\n"
