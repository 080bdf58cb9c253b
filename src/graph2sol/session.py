from __future__ import annotations
from typing import Iterable, Mapping, Optional, Union

from .compiler import CompilerService, CompilerSettings, GeneratedContract, generate_contract
from .emitter import GenerationOptions, emit_source
from .ir import Connection, Graph, Node
from .validator import ValidationResult, validate_graph


class ContractBuilder:
    """Editing-session facade: holds a graph snapshot and generation options.

    Every call works on a deep copy of the current snapshot, so callers may
    keep mutating their own graph while a generation is in flight.
    """

    def __init__(self, options: Optional[GenerationOptions] = None,
                 compiler: Optional[CompilerService] = None,
                 settings: Optional[CompilerSettings] = None):
        self.options = options or GenerationOptions()
        self.compiler = compiler
        self.settings = settings or CompilerSettings()
        self._graph = Graph()
        self.last_result: Optional[GeneratedContract] = None

    @property
    def graph(self) -> Graph:
        return self._graph

    def update_graph(self, nodes: Union[Iterable[Node], Mapping[str, Node]],
                     connections: Union[Iterable[Connection], Mapping[str, Connection]] = ()) -> None:
        if isinstance(nodes, Mapping):
            nodes = nodes.values()
        if isinstance(connections, Mapping):
            connections = connections.values()
        self._graph = Graph(nodes=[n.model_copy(deep=True) for n in nodes],
                            connections=list(connections))

    def set_graph(self, graph: Graph) -> None:
        self._graph = graph.model_copy(deep=True)

    def emit_source(self) -> str:
        return emit_source(self._graph, self.options)

    async def generate_contract(self) -> GeneratedContract:
        result = await generate_contract(self._graph.model_copy(deep=True),
                                         self.options.model_copy(),
                                         self.compiler, self.settings)
        self.last_result = result
        return result

    def validate_graph(self) -> ValidationResult:
        return validate_graph(self._graph)

    # -- generation options ------------------------------------------------

    @property
    def contract_name(self) -> str:
        return self.options.contract_name

    @contract_name.setter
    def contract_name(self, name: str) -> None:
        self.options.contract_name = name

    def set_language_version(self, version: str) -> None:
        self.options.language_version = version

    def set_license(self, license: str) -> None:
        self.options.license = license

    def toggle_comments(self, include: bool) -> None:
        self.options.include_comments = include
