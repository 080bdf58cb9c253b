from importlib.resources import files
from pathlib import Path
from typing import Any, Dict, List

import yaml

from .errors import Graph2SolError
from .ir import Graph
from .nodes import create_node

TEMPLATES = ("erc20", "nft", "counter")


def _load_template_yaml(name: str) -> str:
    pkg = files('graph2sol.templates')
    return (pkg / f"{name}.yaml").read_text()


def available_templates() -> List[str]:
    return list(TEMPLATES)


def build_graph(data: Dict[str, Any]) -> Graph:
    """Build a graph from palette keys: nodes give ``type`` and control overrides."""
    graph = Graph(metadata={k: v for k, v in data.items() if k not in ("nodes", "connections")})
    for n in data.get("nodes", []):
        controls = {k: str(v) for k, v in (n.get("controls") or {}).items()}
        graph.add_node(create_node(n["type"], n["id"], **controls))
    for c in data.get("connections", []):
        graph.connect(c["source"], c["source_output"], c["target"], c["target_input"])
    return graph


def generate_graph_from_template(template: str) -> Graph:
    template = template.lower()
    if template not in TEMPLATES:
        raise Graph2SolError(f"Unknown template '{template}'. Use one of: {', '.join(TEMPLATES)}")
    return build_graph(yaml.safe_load(_load_template_yaml(template)))


def save_graph_yaml(graph: Graph, path: Path):
    path.write_text(yaml.safe_dump(graph.model_dump(mode="json"), sort_keys=False))
