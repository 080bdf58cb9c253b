from __future__ import annotations
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .errors import GraphError


class NodeKind(str, Enum):
    UINT_VAR = "UintVar"
    ADDRESS_VAR = "AddressVar"
    BOOL_VAR = "BoolVar"
    STRING_VAR = "StringVar"
    MAPPING_VAR = "MappingVar"

    CONSTRUCTOR = "Constructor"
    PUBLIC_FN = "PublicFn"
    PRIVATE_FN = "PrivateFn"
    VIEW_FN = "ViewFn"
    PAYABLE_FN = "PayableFn"

    EVENT = "Event"

    ERC20_TEMPLATE = "ERC20Template"
    ERC721_TEMPLATE = "ERC721Template"

    IF_STATEMENT = "IfStatement"
    COMPARISON = "Comparison"
    ASSIGNMENT = "Assignment"
    VARIABLE_REF = "VariableRef"
    MATH_OP = "MathOp"
    LITERAL_VALUE = "LiteralValue"
    LOGICAL_OP = "LogicalOp"


VARIABLE_KINDS = frozenset({
    NodeKind.UINT_VAR, NodeKind.ADDRESS_VAR, NodeKind.BOOL_VAR,
    NodeKind.STRING_VAR, NodeKind.MAPPING_VAR,
})
FUNCTION_KINDS = frozenset({
    NodeKind.CONSTRUCTOR, NodeKind.PUBLIC_FN, NodeKind.PRIVATE_FN,
    NodeKind.VIEW_FN, NodeKind.PAYABLE_FN,
})
TEMPLATE_KINDS = frozenset({NodeKind.ERC20_TEMPLATE, NodeKind.ERC721_TEMPLATE})
OPERATOR_KINDS = frozenset({NodeKind.COMPARISON, NodeKind.MATH_OP, NodeKind.LOGICAL_OP})


class SocketFlavor(str, Enum):
    EXECUTION = "execution"
    BOOLEAN = "boolean"
    VALUE = "value"
    UNIVERSAL = "universal"


def flavors_compatible(source: SocketFlavor, target: SocketFlavor) -> bool:
    if SocketFlavor.UNIVERSAL in (source, target):
        return True
    return source == target


class Port(BaseModel):
    model_config = ConfigDict(frozen=True)

    flavor: SocketFlavor
    type: Optional[str] = None  # solidity type string for typed value sockets


class Node(BaseModel):
    id: str
    kind: NodeKind
    controls: Dict[str, str] = Field(default_factory=dict)
    inputs: Dict[str, Port] = Field(default_factory=dict)
    outputs: Dict[str, Port] = Field(default_factory=dict)

    @field_validator("inputs", "outputs", mode="before")
    @classmethod
    def _flavor_shorthand(cls, v: Any) -> Any:
        # YAML graphs may write `exec_in: execution` instead of a full port mapping
        if isinstance(v, dict):
            return {k: {"flavor": p} if isinstance(p, str) else p for k, p in v.items()}
        return v

    @field_validator("controls", mode="before")
    @classmethod
    def _stringify_controls(cls, v: Any) -> Any:
        if isinstance(v, dict):
            return {k: "" if c is None else str(c) for k, c in v.items()}
        return v

    def control(self, key: str, default: str = "") -> str:
        return self.controls.get(key) or default


class Connection(BaseModel):
    model_config = ConfigDict(frozen=True)

    source: str
    source_output: str
    target: str
    target_input: str

    @property
    def id(self) -> str:
        return f"{self.source}.{self.source_output}->{self.target}.{self.target_input}"


class Graph(BaseModel):
    """Node arena keyed by id plus the connections between node ports.

    Node iteration order is insertion order; emission relies on it.
    """

    nodes: Dict[str, Node] = Field(default_factory=dict)
    connections: Dict[str, Connection] = Field(default_factory=dict)
    metadata: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("nodes", mode="before")
    @classmethod
    def _nodes_from_list(cls, v: Any) -> Any:
        if not isinstance(v, list):
            return v
        nodes: Dict[str, Any] = {}
        for n in v:
            node_id = n.id if isinstance(n, Node) else n.get("id") if isinstance(n, dict) else None
            if not node_id:
                raise ValueError(f"Node entry {n!r} has no id")
            if node_id in nodes:
                raise ValueError(f"Duplicate node id '{node_id}'")
            nodes[node_id] = n
        return nodes

    @field_validator("nodes")
    @classmethod
    def _keys_match_ids(cls, v: Dict[str, Node]) -> Dict[str, Node]:
        for key, node in v.items():
            if key != node.id:
                raise ValueError(f"Node stored under '{key}' has id '{node.id}'")
        return v

    @field_validator("connections", mode="before")
    @classmethod
    def _connections_from_list(cls, v: Any) -> Any:
        if isinstance(v, list):
            conns = [c if isinstance(c, Connection) else Connection.model_validate(c) for c in v]
            return {c.id: c for c in conns}
        return v

    # -- queries -----------------------------------------------------------

    def node_by_id(self, node_id: str) -> Optional[Node]:
        return self.nodes.get(node_id)

    def nodes_of_kind(self, *kinds: NodeKind) -> List[Node]:
        return [n for n in self.nodes.values() if n.kind in kinds]

    def connections_into(self, node_id: str, port_name: str) -> List[Connection]:
        return [c for c in self.connections.values()
                if c.target == node_id and c.target_input == port_name]

    def connection_into(self, node_id: str, port_name: str) -> Optional[Connection]:
        found = self.connections_into(node_id, port_name)
        return found[0] if found else None

    def connections_out_of(self, node_id: str, port_name: str) -> List[Connection]:
        return [c for c in self.connections.values()
                if c.source == node_id and c.source_output == port_name]

    def connection_out_of(self, node_id: str, port_name: str) -> Optional[Connection]:
        found = self.connections_out_of(node_id, port_name)
        return found[0] if found else None

    def dangling_connections(self) -> List[Connection]:
        """Connections whose endpoints name a missing node or port."""
        bad = []
        for c in self.connections.values():
            src = self.nodes.get(c.source)
            dst = self.nodes.get(c.target)
            if (src is None or dst is None
                    or c.source_output not in src.outputs
                    or c.target_input not in dst.inputs):
                bad.append(c)
        return bad

    # -- mutation ----------------------------------------------------------

    def add_node(self, node: Node) -> Node:
        if node.id in self.nodes:
            raise GraphError(f"Node '{node.id}' already exists.")
        self.nodes[node.id] = node
        return node

    def remove_node(self, node_id: str) -> None:
        if node_id not in self.nodes:
            raise GraphError(f"Node '{node_id}' does not exist.")
        del self.nodes[node_id]
        self.connections = {cid: c for cid, c in self.connections.items()
                            if c.source != node_id and c.target != node_id}

    def set_control(self, node_id: str, key: str, value: str) -> None:
        node = self.nodes.get(node_id)
        if node is None:
            raise GraphError(f"Node '{node_id}' does not exist.")
        node.controls[key] = value

    def connect(self, source: str, source_output: str, target: str, target_input: str) -> Connection:
        """Connect an output port to an input port.

        An input accepts a single connection; connecting again replaces the
        previous one. Outputs may fan out freely.
        """
        src = self.nodes.get(source)
        dst = self.nodes.get(target)
        if src is None or dst is None:
            raise GraphError(f"Connection {source}->{target} references missing node(s).")
        if source_output not in src.outputs:
            raise GraphError(f"'{source_output}' is not an output of {source}.")
        if target_input not in dst.inputs:
            raise GraphError(f"'{target_input}' is not an input of {target}.")

        out_flavor = src.outputs[source_output].flavor
        in_flavor = dst.inputs[target_input].flavor
        if not flavors_compatible(out_flavor, in_flavor):
            raise GraphError(
                f"Cannot connect {out_flavor.value} output {source}.{source_output} "
                f"to {in_flavor.value} input {target}.{target_input}."
            )

        self.connections = {cid: c for cid, c in self.connections.items()
                            if not (c.target == target and c.target_input == target_input)}
        conn = Connection(source=source, source_output=source_output,
                          target=target, target_input=target_input)
        self.connections[conn.id] = conn
        return conn

    def disconnect(self, connection_id: str) -> None:
        if self.connections.pop(connection_id, None) is None:
            raise GraphError(f"Connection '{connection_id}' does not exist.")
