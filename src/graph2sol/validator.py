from __future__ import annotations
from collections import Counter
from pathlib import Path
from typing import Callable, List, Tuple

import networkx as nx
from pydantic import BaseModel, Field

from .errors import TypeSyntaxError
from .ir import (FUNCTION_KINDS, OPERATOR_KINDS, VARIABLE_KINDS, Graph, NodeKind,
                 SocketFlavor, flavors_compatible)
from .nodes import label_for
from .operators import parse_operator
from .project import load_graph
from .types import is_compatible, parse_parameters, parse_type

NAMED_KINDS = (VARIABLE_KINDS | FUNCTION_KINDS | {NodeKind.EVENT}) - {NodeKind.CONSTRUCTOR}
PARAMETER_KINDS = FUNCTION_KINDS | {NodeKind.EVENT}


class ValidationResult(BaseModel):
    is_valid: bool
    errors: List[str] = Field(default_factory=list)


def _duplicate_names(g: Graph) -> List[str]:
    errors = []
    seen = set()
    for node in g.nodes.values():
        name = node.control("name").strip()
        if not name:
            continue
        if name in seen:
            errors.append(f"Duplicate name found: {name}")
        seen.add(name)
    return errors


def _missing_names(g: Graph) -> List[str]:
    return [f"{label_for(n.kind)} '{n.id}' is missing a name"
            for n in g.nodes.values()
            if n.kind in NAMED_KINDS and not n.control("name").strip()]


def _constructor_count(g: Graph) -> List[str]:
    ctors = g.nodes_of_kind(NodeKind.CONSTRUCTOR)
    if len(ctors) > 1:
        return [f"Graph has {len(ctors)} constructor nodes; only one is allowed"]
    return []


def _connections(g: Graph) -> List[str]:
    errors = []
    dangling = g.dangling_connections()
    for c in dangling:
        errors.append(f"Connection {c.id} references a missing node or port")

    for c in g.connections.values():
        if c in dangling:
            continue
        out_port = g.nodes[c.source].outputs[c.source_output]
        in_port = g.nodes[c.target].inputs[c.target_input]
        if not flavors_compatible(out_port.flavor, in_port.flavor):
            errors.append(f"Connection {c.id} joins incompatible "
                          f"{out_port.flavor.value} and {in_port.flavor.value} sockets")
        elif out_port.type and in_port.type and not is_compatible(
                parse_type(out_port.type), parse_type(in_port.type)):
            errors.append(f"Connection {c.id} passes {out_port.type} into {in_port.type}")

    fan_in = Counter((c.target, c.target_input) for c in g.connections.values())
    for (node_id, port), count in fan_in.items():
        if count > 1:
            errors.append(f"Input {node_id}.{port} has {count} incoming connections")
    return errors


def _operators(g: Graph) -> List[str]:
    errors = []
    for node in g.nodes.values():
        if node.kind in OPERATOR_KINDS and parse_operator(node.control("operator"), node.kind) is None:
            errors.append(f"{label_for(node.kind)} '{node.id}' has unsupported "
                          f"operator '{node.control('operator')}'")
    return errors


def _parameter_lists(g: Graph) -> List[str]:
    errors = []
    for node in g.nodes.values():
        if node.kind not in PARAMETER_KINDS:
            continue
        who = node.control("name").strip() or node.id
        for key in ("parameters", "returns"):
            try:
                parse_parameters(node.control(key))
            except TypeSyntaxError as exc:
                errors.append(f"{label_for(node.kind)} '{who}' has malformed {key}: {exc}")
    return errors


def _value_cycles(g: Graph) -> List[str]:
    nxg = nx.DiGraph()
    nxg.add_nodes_from(g.nodes)
    for c in g.connections.values():
        src = g.nodes.get(c.source)
        if src is None or c.target not in g.nodes or c.source_output not in src.outputs:
            continue
        if src.outputs[c.source_output].flavor != SocketFlavor.EXECUTION:
            nxg.add_edge(c.source, c.target)
    return [f"Value cycle detected: {' -> '.join(cycle + cycle[:1])}"
            for cycle in nx.simple_cycles(nxg)]


# (ok message, check) in reporting order
CHECKS: List[Tuple[str, Callable[[Graph], List[str]]]] = [
    ("Names are unique.", _duplicate_names),
    ("All variables, functions and events are named.", _missing_names),
    ("At most one constructor.", _constructor_count),
    ("All connections are well formed.", _connections),
    ("All operators are supported.", _operators),
    ("Parameter lists parse.", _parameter_lists),
    ("Value flow is acyclic.", _value_cycles),
]


def validate_graph(g: Graph) -> ValidationResult:
    """Run every structural check and collect all errors.

    Advisory only: emission does not require a valid graph.
    """
    errors: List[str] = []
    for _, check in CHECKS:
        errors += check(g)
    return ValidationResult(is_valid=not errors, errors=errors)


def validate_graph_from_file(path: Path) -> Tuple[bool, List[str]]:
    messages: List[str] = []
    ok = True
    g = load_graph(path)
    for ok_message, check in CHECKS:
        errors = check(g)
        if errors:
            ok = False
            messages += [f"ERR: {e}" for e in errors]
        else:
            messages.append(f"OK: {ok_message}")
    return ok, messages
