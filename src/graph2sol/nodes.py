"""Palette of node types the builder can place on the canvas.

Each palette key maps to a fixed layout of controls and ports. The table is
closed: ``create_node`` rejects keys it does not know.
"""
from __future__ import annotations
import uuid
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from .errors import GraphError, UnknownNodeTypeError
from .ir import Node, NodeKind, Port, SocketFlavor

EXEC = Port(flavor=SocketFlavor.EXECUTION)
BOOL = Port(flavor=SocketFlavor.BOOLEAN)
VALUE = Port(flavor=SocketFlavor.VALUE)
ANY = Port(flavor=SocketFlavor.UNIVERSAL)


class NodeLayout(BaseModel):
    kind: NodeKind
    label: str
    controls: Dict[str, str] = Field(default_factory=dict)
    inputs: Dict[str, Port] = Field(default_factory=dict)
    outputs: Dict[str, Port] = Field(default_factory=dict)


def _variable(kind: NodeKind, label: str, type_name: str, initial: str) -> NodeLayout:
    return NodeLayout(
        kind=kind, label=label,
        controls={"name": "", "value": initial, "visibility": "public"},
        outputs={"value": Port(flavor=SocketFlavor.VALUE, type=type_name)},
    )


def _function(kind: NodeKind, label: str) -> NodeLayout:
    controls = {"name": "", "parameters": "", "returns": "", "modifiers": ""}
    if kind == NodeKind.CONSTRUCTOR:
        controls = {"parameters": "", "modifiers": ""}
    return NodeLayout(
        kind=kind, label=label, controls=controls,
        inputs={"param1": ANY, "param2": ANY, "param3": ANY, "execution": EXEC},
        outputs={"execution": EXEC},
    )


PALETTE: Dict[str, NodeLayout] = {
    # state variables
    "uint-variable": _variable(NodeKind.UINT_VAR, "Uint Variable", "uint256", "0"),
    "address-variable": _variable(NodeKind.ADDRESS_VAR, "Address Variable", "address", "address(0)"),
    "bool-variable": _variable(NodeKind.BOOL_VAR, "Bool Variable", "bool", "false"),
    "string-variable": _variable(NodeKind.STRING_VAR, "String Variable", "string", '""'),
    "mapping-variable": NodeLayout(
        kind=NodeKind.MAPPING_VAR, label="Mapping Variable",
        controls={"name": "", "keyType": "address", "valueType": "uint256", "visibility": "public"},
        outputs={"value": Port(flavor=SocketFlavor.VALUE, type="mapping(address => uint256)")},
    ),
    # functions
    "constructor-function": _function(NodeKind.CONSTRUCTOR, "Constructor"),
    "public-function": _function(NodeKind.PUBLIC_FN, "Public Function"),
    "private-function": _function(NodeKind.PRIVATE_FN, "Private Function"),
    "view-function": _function(NodeKind.VIEW_FN, "View Function"),
    "payable-function": _function(NodeKind.PAYABLE_FN, "Payable Function"),
    # events
    "event": NodeLayout(
        kind=NodeKind.EVENT, label="Event",
        controls={"name": "", "parameters": ""},
        inputs={"trigger": EXEC},
    ),
    # templates
    "erc20-template": NodeLayout(
        kind=NodeKind.ERC20_TEMPLATE, label="ERC20 Token",
        controls={"name": "MyToken", "symbol": "MTK", "decimals": "18", "totalSupply": "1000000"},
        outputs={"contract": Port(flavor=SocketFlavor.VALUE, type="ERC20")},
    ),
    "erc721-template": NodeLayout(
        kind=NodeKind.ERC721_TEMPLATE, label="ERC721 NFT",
        controls={"name": "MyNFT", "symbol": "MNFT", "baseURI": ""},
        outputs={"contract": Port(flavor=SocketFlavor.VALUE, type="ERC721")},
    ),
    # logic
    "if-statement": NodeLayout(
        kind=NodeKind.IF_STATEMENT, label="If Statement",
        inputs={"exec_in": EXEC, "condition": BOOL},
        outputs={"exec_true": EXEC, "exec_false": EXEC, "exec_out": EXEC},
    ),
    "comparison": NodeLayout(
        kind=NodeKind.COMPARISON, label="Comparison",
        controls={"operator": ">"},
        inputs={"left": VALUE, "right": VALUE},
        outputs={"result": BOOL},
    ),
    "assignment": NodeLayout(
        kind=NodeKind.ASSIGNMENT, label="Assignment",
        controls={"variable": ""},
        inputs={"exec_in": EXEC, "value": VALUE},
        outputs={"exec_out": EXEC},
    ),
    "variable-reference": NodeLayout(
        kind=NodeKind.VARIABLE_REF, label="Variable Reference",
        controls={"variable": ""},
        outputs={"value": VALUE},
    ),
    "math-operation": NodeLayout(
        kind=NodeKind.MATH_OP, label="Math Operation",
        controls={"operator": "+"},
        inputs={"left": VALUE, "right": VALUE},
        outputs={"result": VALUE},
    ),
    "literal-value": NodeLayout(
        kind=NodeKind.LITERAL_VALUE, label="Literal Value",
        controls={"value": "0", "type": "uint256"},
        outputs={"value": VALUE},
    ),
    "logical-operation": NodeLayout(
        kind=NodeKind.LOGICAL_OP, label="Logical Operation",
        controls={"operator": "&&"},
        inputs={"left": BOOL, "right": BOOL},
        outputs={"result": BOOL},
    ),
}

LABELS: Dict[NodeKind, str] = {layout.kind: layout.label for layout in PALETTE.values()}


def available_node_types() -> List[str]:
    return list(PALETTE)


def label_for(kind: NodeKind) -> str:
    return LABELS[kind]


def create_node(node_type: str, node_id: Optional[str] = None, **controls: str) -> Node:
    """Build a node with the fixed layout registered for ``node_type``.

    Keyword arguments override control defaults, e.g.
    ``create_node("uint-variable", name="total")``.
    """
    layout = PALETTE.get(node_type)
    if layout is None:
        raise UnknownNodeTypeError(
            f"Unknown node type '{node_type}'. Use one of: {', '.join(PALETTE)}"
        )
    unknown = set(controls) - set(layout.controls)
    if unknown:
        raise GraphError(
            f"Node type '{node_type}' has no control(s): {', '.join(sorted(unknown))}"
        )
    return Node(
        id=node_id or f"{node_type}-{uuid.uuid4().hex[:8]}",
        kind=layout.kind,
        controls={**layout.controls, **controls},
        inputs=dict(layout.inputs),
        outputs=dict(layout.outputs),
    )
