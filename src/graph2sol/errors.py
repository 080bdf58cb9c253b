class Graph2SolError(ValueError):
    """Base class for errors raised by graph2sol."""


class GraphError(Graph2SolError):
    """A mutation would break the graph's structural invariants."""


class UnknownNodeTypeError(Graph2SolError):
    pass


class ProjectFormatError(Graph2SolError):
    """A serialized project could not be read."""


class CompilerServiceError(Graph2SolError):
    """The compiler service rejected a request or could not be reached."""


class TypeSyntaxError(Graph2SolError):
    """A parameter list or type string is not well formed."""
