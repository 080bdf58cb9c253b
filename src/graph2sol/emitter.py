"""Solidity source emission from a node graph.

The file layout is fixed: license, pragma, imports, contract header, state
variables, events, constructor, functions, template implementations. Nodes
missing a name are left out rather than emitted half-formed, so the output
is always a balanced skeleton even when it would not compile.
"""
from __future__ import annotations
import logging
from typing import Dict, List, Optional

from pydantic import BaseModel

from .ir import Graph, Node, NodeKind, VARIABLE_KINDS
from .resolver import INDENT, resolve_statements
from .types import default_value, parse_type, quote_string

log = logging.getLogger(__name__)

PLACEHOLDER_BODY = "// Implement function logic here"

# template kind -> (import path, base contract); iteration order is emission order
TEMPLATES: Dict[NodeKind, tuple] = {
    NodeKind.ERC20_TEMPLATE: ("@openzeppelin/contracts/token/ERC20/ERC20.sol", "ERC20"),
    NodeKind.ERC721_TEMPLATE: ("@openzeppelin/contracts/token/ERC721/ERC721.sol", "ERC721"),
}

VARIABLE_TYPES = {
    NodeKind.UINT_VAR: "uint256",
    NodeKind.ADDRESS_VAR: "address",
    NodeKind.BOOL_VAR: "bool",
    NodeKind.STRING_VAR: "string",
}

# function kind -> (visibility, state mutability)
FUNCTION_FLAVORS = {
    NodeKind.PUBLIC_FN: ("public", ""),
    NodeKind.PRIVATE_FN: ("private", ""),
    NodeKind.VIEW_FN: ("public", "view"),
    NodeKind.PAYABLE_FN: ("public", "payable"),
}


class GenerationOptions(BaseModel):
    contract_name: str = "GeneratedContract"
    language_version: str = "0.8.19"
    license: str = "MIT"
    include_comments: bool = True


def emit_source(graph: Graph, options: Optional[GenerationOptions] = None) -> str:
    options = options or GenerationOptions()
    templates = template_nodes(graph)

    lines = [f"// SPDX-License-Identifier: {options.license}", ""]
    lines += [f"pragma solidity {_version_constraint(options.language_version)};", ""]

    imports = [f'import "{TEMPLATES[kind][0]}";' for kind in templates]
    if imports:
        lines += imports + [""]

    bases = [TEMPLATES[kind][1] for kind in templates]
    inheritance = f" is {', '.join(bases)}" if bases else ""
    lines += [f"contract {options.contract_name}{inheritance} {{", ""]

    sections = [
        ("State variables", state_variables(graph)),
        ("Events", events(graph)),
        ("Constructor", constructor(graph, templates)),
        ("Functions", functions(graph)),
        ("Template implementations", template_implementations(templates)),
    ]
    for title, body in sections:
        if not body:
            continue
        if options.include_comments:
            lines.append(f"{INDENT}// {title}")
        lines += body + [""]

    while lines and lines[-1] == "":
        lines.pop()
    lines.append("}")
    return "\n".join(lines)


def _version_constraint(version: str) -> str:
    version = version.strip()
    if version[:1] in ("^", "~", ">", "<", "="):
        return version
    return f"^{version}"


def template_nodes(graph: Graph) -> Dict[NodeKind, Node]:
    """First node of each template kind present, in emission order."""
    found: Dict[NodeKind, Node] = {}
    for kind in TEMPLATES:
        nodes = graph.nodes_of_kind(kind)
        if nodes:
            found[kind] = nodes[0]
    return found


def _name(node: Node) -> str:
    return node.control("name").strip()


def state_variables(graph: Graph) -> List[str]:
    out = []
    for node in graph.nodes.values():
        if node.kind not in VARIABLE_KINDS or not _name(node):
            continue
        visibility = node.control("visibility").strip() or "public"

        if node.kind == NodeKind.MAPPING_VAR:
            key = node.control("keyType").strip() or "address"
            value = node.control("valueType").strip() or "uint256"
            out.append(f"{INDENT}mapping({key} => {value}) {visibility} {_name(node)};")
            continue

        type_name = VARIABLE_TYPES[node.kind]
        value = node.control("value").strip()
        if value and value != default_value(parse_type(type_name)):
            out.append(f"{INDENT}{type_name} {visibility} {_name(node)} = {value};")
        else:
            out.append(f"{INDENT}{type_name} {visibility} {_name(node)};")
    return out


def events(graph: Graph) -> List[str]:
    return [
        f"{INDENT}event {_name(node)}({node.control('parameters').strip()});"
        for node in graph.nodes_of_kind(NodeKind.EVENT)
        if _name(node)
    ]


def _body(graph: Graph, node: Node) -> List[str]:
    """Statements of a function or constructor node.

    The first statement is the node wired from the function's execution
    output, or failing that the node wired into its execution input.
    """
    out = graph.connection_out_of(node.id, "execution")
    if out is not None:
        start, port = out.target, out.target_input
    else:
        entry = graph.connection_into(node.id, "execution")
        if entry is None:
            return []
        start, port = entry.source, entry.source_output
    return resolve_statements(graph, start, port, indent_level=2, visited={node.id})


def constructor(graph: Graph, templates: Dict[NodeKind, Node]) -> List[str]:
    """Constructor built from the first Constructor node and any templates.

    Templates need their base constructors invoked, so one is emitted for
    them even when the graph has no Constructor node.
    """
    ctors = graph.nodes_of_kind(NodeKind.CONSTRUCTOR)
    if not ctors and not templates:
        return []
    if len(ctors) > 1:
        log.warning("Graph has %d constructor nodes; using '%s'", len(ctors), ctors[0].id)
    ctor = ctors[0] if ctors else None

    head = []
    body = []
    erc20 = templates.get(NodeKind.ERC20_TEMPLATE)
    if erc20 is not None:
        name = erc20.control("name").strip() or "MyToken"
        symbol = erc20.control("symbol").strip() or "MTK"
        supply = erc20.control("totalSupply").strip() or "1000000"
        head.append(f"ERC20({quote_string(name)}, {quote_string(symbol)})")
        body.append(f"{INDENT * 2}_mint(msg.sender, {supply} * 10**decimals());")
    erc721 = templates.get(NodeKind.ERC721_TEMPLATE)
    if erc721 is not None:
        name = erc721.control("name").strip() or "MyNFT"
        symbol = erc721.control("symbol").strip() or "MNFT"
        head.append(f"ERC721({quote_string(name)}, {quote_string(symbol)})")

    parameters = ""
    if ctor is not None:
        parameters = ctor.control("parameters").strip()
        modifiers = ctor.control("modifiers").strip()
        if modifiers:
            head.append(modifiers)
        body += _body(graph, ctor)

    head_str = f" {' '.join(head)}" if head else ""
    return [f"{INDENT}constructor({parameters}){head_str} {{", *body, f"{INDENT}}}"]


def functions(graph: Graph) -> List[str]:
    out: List[str] = []
    for node in graph.nodes.values():
        flavor = FUNCTION_FLAVORS.get(node.kind)
        if flavor is None or not _name(node):
            continue
        visibility, mutability = flavor
        parameters = node.control("parameters").strip()
        modifiers = node.control("modifiers").strip()
        returns = node.control("returns").strip()

        signature = f"{INDENT}function {_name(node)}({parameters}) {visibility}"
        if mutability:
            signature += f" {mutability}"
        if modifiers:
            signature += f" {modifiers}"
        if returns:
            signature += f" returns ({returns})"

        if out:
            out.append("")
        out.append(signature + " {")
        out += _body(graph, node) or [f"{INDENT * 2}{PLACEHOLDER_BODY}"]
        out.append(f"{INDENT}}}")
    return out


def template_implementations(templates: Dict[NodeKind, Node]) -> List[str]:
    out: List[str] = []
    erc20 = templates.get(NodeKind.ERC20_TEMPLATE)
    if erc20 is not None:
        decimals = erc20.control("decimals").strip()
        if decimals and decimals != "18":
            out += [
                f"{INDENT}function decimals() public pure override returns (uint8) {{",
                f"{INDENT * 2}return {decimals};",
                f"{INDENT}}}",
            ]

    erc721 = templates.get(NodeKind.ERC721_TEMPLATE)
    if erc721 is not None:
        base_uri = erc721.control("baseURI").strip()
        if base_uri:
            if out:
                out.append("")
            out += [
                f"{INDENT}function _baseURI() internal pure override returns (string memory) {{",
                f"{INDENT * 2}return {quote_string(base_uri)};",
                f"{INDENT}}}",
            ]
        if out:
            out.append("")
        out += [
            f"{INDENT}function mint(address to, uint256 tokenId) public {{",
            f"{INDENT * 2}_mint(to, tokenId);",
            f"{INDENT}}}",
        ]
    return out
