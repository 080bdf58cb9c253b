"""Turn graph structure into expressions and ordered statement lines.

Value connections are resolved recursively into infix expressions.
Execution connections are walked to produce statements, each node at most
once per walk so merging branches never duplicate code.
"""
from __future__ import annotations
import logging
from typing import FrozenSet, List, Optional, Set

from .ir import Graph, Node, NodeKind, OPERATOR_KINDS
from .operators import parse_operator
from .types import quote_string

log = logging.getLogger(__name__)

FALLBACK_LITERAL = "true"
INDENT = "    "


def resolve_expression(graph: Graph, node: Node, input_port: str,
                       fallback: str = FALLBACK_LITERAL,
                       _path: Optional[FrozenSet[str]] = None) -> str:
    """Expression text feeding ``node.input_port``.

    An unconnected input, an unknown source kind, an unrecognized operator
    or a cycle back into the current path all yield ``fallback``.
    """
    path = _path if _path is not None else frozenset({node.id})
    conn = graph.connection_into(node.id, input_port)
    if conn is None:
        return fallback
    source = graph.node_by_id(conn.source)
    if source is None:
        return fallback
    if source.id in path:
        log.warning("Value cycle through node '%s' while resolving %s.%s",
                    source.id, node.id, input_port)
        return fallback
    path = path | {source.id}

    if source.kind in OPERATOR_KINDS:
        op = parse_operator(source.control("operator"), source.kind)
        if op is None:
            log.warning("Node '%s' has unsupported operator %r",
                        source.id, source.control("operator"))
            return fallback
        left = _operand(graph, source, "left", fallback, path)
        right = _operand(graph, source, "right", fallback, path)
        return f"{left} {op.value} {right}"

    if source.kind == NodeKind.VARIABLE_REF:
        return source.control("variable").strip() or fallback

    if source.kind == NodeKind.LITERAL_VALUE:
        value = source.control("value")
        if source.control("type").strip() == "string":
            return quote_string(value)
        return value.strip() or fallback

    return fallback


def _operand(graph: Graph, node: Node, port: str, fallback: str, path: FrozenSet[str]) -> str:
    text = resolve_expression(graph, node, port, fallback, path)
    conn = graph.connection_into(node.id, port)
    feeder = graph.node_by_id(conn.source) if conn is not None else None
    if feeder is not None and feeder.kind in OPERATOR_KINDS and text != fallback:
        return f"({text})"
    return text


def resolve_statements(graph: Graph, entry_node_id: str, entry_port: str = "exec_in",
                       indent_level: int = 2,
                       visited: Optional[Set[str]] = None) -> List[str]:
    """Source lines for the execution flow starting at ``entry_node_id``.

    ``entry_port`` names the socket the flow arrives through and is only
    logged: every statement kind has a single flow entry, so the walk
    dispatches on the node alone.
    """
    log.debug("Resolving statements from %s.%s", entry_node_id, entry_port)
    lines: List[str] = []
    _walk(graph, entry_node_id, indent_level, visited if visited is not None else set(), lines)
    return lines


def _walk(graph: Graph, node_id: Optional[str], level: int, visited: Set[str], lines: List[str]) -> None:
    while node_id is not None and node_id not in visited:
        visited.add(node_id)
        node = graph.node_by_id(node_id)
        if node is None:
            return
        indent = INDENT * level

        if node.kind == NodeKind.IF_STATEMENT:
            condition = resolve_expression(graph, node, "condition")
            lines.append(f"{indent}if ({condition}) {{")
            branch = graph.connection_out_of(node.id, "exec_true")
            if branch is not None:
                _walk(graph, branch.target, level + 1, visited, lines)
            branch = graph.connection_out_of(node.id, "exec_false")
            if branch is not None:
                lines.append(f"{indent}}} else {{")
                _walk(graph, branch.target, level + 1, visited, lines)
            lines.append(f"{indent}}}")

        elif node.kind == NodeKind.ASSIGNMENT:
            variable = node.control("variable").strip()
            value = resolve_expression(graph, node, "value")
            if variable:
                lines.append(f"{indent}{variable} = {value};")
            else:
                log.debug("Assignment '%s' has no target variable; skipped", node.id)

        else:
            # not a statement node: the flow ends here
            return

        nxt = graph.connection_out_of(node.id, "exec_out")
        node_id = nxt.target if nxt is not None else None
