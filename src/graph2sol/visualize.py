import networkx as nx

from .ir import Graph
from .nodes import label_for


def ascii_plan(g: Graph) -> str:
    nxg = nx.MultiDiGraph()
    nxg.add_nodes_from(g.nodes)
    for c in g.connections.values():
        if c.source in g.nodes and c.target in g.nodes:
            nxg.add_edge(c.source, c.target, label=f"{c.source_output}->{c.target_input}")

    try:
        order = list(nx.topological_sort(nxg))
        lines = ["# ASCII Plan (topological order)"]
    except nx.NetworkXUnfeasible:
        order = list(g.nodes)
        lines = ["# ASCII Plan (graph has a cycle; insertion order)"]

    for i, nid in enumerate(order, 1):
        node = g.nodes[nid]
        name = node.control("name") or node.control("variable")
        suffix = f" {name}" if name else ""
        lines.append(f"{i:02d}. {node.id} [{label_for(node.kind)}]{suffix}")
        for _, succ, elabel in nxg.out_edges(nid, data="label"):
            lines.append(f"    └─▶ {succ}  ({elabel})")
    return "\n".join(lines)
