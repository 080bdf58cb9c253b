from __future__ import annotations
from enum import Enum
from typing import Dict, FrozenSet, Optional

from .ir import NodeKind


class Operator(str, Enum):
    GT = ">"
    LT = "<"
    EQ = "=="
    NE = "!="
    GE = ">="
    LE = "<="

    ADD = "+"
    SUB = "-"
    MUL = "*"
    DIV = "/"
    MOD = "%"
    POW = "**"

    AND = "&&"
    OR = "||"


COMPARISON_OPERATORS = frozenset({Operator.GT, Operator.LT, Operator.EQ,
                                  Operator.NE, Operator.GE, Operator.LE})
MATH_OPERATORS = frozenset({Operator.ADD, Operator.SUB, Operator.MUL,
                            Operator.DIV, Operator.MOD, Operator.POW})
LOGICAL_OPERATORS = frozenset({Operator.AND, Operator.OR})

ALLOWED: Dict[NodeKind, FrozenSet[Operator]] = {
    NodeKind.COMPARISON: COMPARISON_OPERATORS,
    NodeKind.MATH_OP: MATH_OPERATORS,
    NodeKind.LOGICAL_OP: LOGICAL_OPERATORS,
}


def parse_operator(text: str, kind: NodeKind) -> Optional[Operator]:
    """Return the operator spelled by ``text`` if ``kind`` allows it, else None."""
    try:
        op = Operator(text.strip())
    except ValueError:
        return None
    if op not in ALLOWED.get(kind, frozenset()):
        return None
    return op
