"""Solidity type model used by sockets, parameter lists and ABI extraction.

``parse_type`` is total: any string it does not recognize becomes a
``ContractType`` so user-defined names (structs, contracts) pass through.
"""
from __future__ import annotations

import re
from enum import Enum
from typing import Annotated, List, Literal, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field

from .errors import TypeSyntaxError


class BaseKind(str, Enum):
    INTEGER = "integer"
    ADDRESS = "address"
    BOOLEAN = "boolean"
    STRING = "string"
    BYTES = "bytes"


class _TypeBase(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str


class ElementaryType(_TypeBase):
    kind: Literal["elementary"] = "elementary"
    base: BaseKind
    bit_width: Optional[int] = None  # integers only
    signed: bool = False
    size: Optional[int] = None  # fixed-size bytesN only


class ArrayType(_TypeBase):
    kind: Literal["array"] = "array"
    element: SocketType
    fixed_size: Optional[int] = None


class MappingType(_TypeBase):
    kind: Literal["mapping"] = "mapping"
    key: SocketType
    value: SocketType


class StructType(_TypeBase):
    kind: Literal["struct"] = "struct"
    members: Tuple[SocketType, ...] = ()


class EnumType(_TypeBase):
    kind: Literal["enum"] = "enum"
    members: Tuple[str, ...] = ()


class ContractType(_TypeBase):
    kind: Literal["contract"] = "contract"


SocketType = Annotated[
    Union[ElementaryType, ArrayType, MappingType, StructType, EnumType, ContractType],
    Field(discriminator="kind"),
]

for _model in (ArrayType, MappingType, StructType):
    _model.model_rebuild()


_INTEGER_RE = re.compile(r"^(uint|int)(\d*)$")
_BYTES_RE = re.compile(r"^bytes(\d*)$")
_ARRAY_RE = re.compile(r"^(.+)\[(\d*)\]$")
_MAPPING_RE = re.compile(r"^mapping\s*\(\s*(.+?)\s*=>\s*(.+?)\s*\)$")
_IDENTIFIER_RE = re.compile(r"^[A-Za-z_$][A-Za-z0-9_$]*$")

DATA_LOCATIONS = ("memory", "storage", "calldata")


def parse_type(type_string: str) -> SocketType:
    s = type_string.strip()

    m = _INTEGER_RE.match(s)
    if m:
        width = int(m.group(2)) if m.group(2) else 256
        return ElementaryType(name=s, base=BaseKind.INTEGER, bit_width=width,
                              signed=m.group(1) == "int")
    if s in ("address", "address payable"):
        return ElementaryType(name=s, base=BaseKind.ADDRESS)
    if s == "bool":
        return ElementaryType(name=s, base=BaseKind.BOOLEAN)
    if s == "string":
        return ElementaryType(name=s, base=BaseKind.STRING)
    m = _BYTES_RE.match(s)
    if m:
        size = int(m.group(1)) if m.group(1) else None
        return ElementaryType(name=s, base=BaseKind.BYTES, size=size)

    m = _ARRAY_RE.match(s)
    if m:
        element, size = m.groups()
        return ArrayType(name=s, element=parse_type(element),
                         fixed_size=int(size) if size else None)

    m = _MAPPING_RE.match(s)
    if m:
        key, value = m.groups()
        return MappingType(name=s, key=parse_type(key), value=parse_type(value))

    return ContractType(name=s)


def render_type(t: SocketType) -> str:
    """Canonical source spelling of a parsed type."""
    if isinstance(t, ArrayType):
        size = "" if t.fixed_size is None else str(t.fixed_size)
        return f"{render_type(t.element)}[{size}]"
    if isinstance(t, MappingType):
        return f"mapping({render_type(t.key)} => {render_type(t.value)})"
    return t.name


def _integer_width(t: ElementaryType) -> int:
    return t.bit_width if t.bit_width is not None else 256


def is_compatible(source: SocketType, target: SocketType) -> bool:
    """Whether a value of ``source`` type may feed a ``target`` slot.

    Integers only widen implicitly; narrowing needs an explicit cast.
    """
    if source.name == target.name:
        return True
    if not (isinstance(source, ElementaryType) and isinstance(target, ElementaryType)):
        return False
    if source.base == BaseKind.INTEGER and target.base == BaseKind.INTEGER:
        return _integer_width(source) <= _integer_width(target)
    if source.base == BaseKind.ADDRESS and target.base == BaseKind.ADDRESS:
        return True
    return False


def default_value(t: SocketType) -> str:
    """Zero-value literal for elementary types, '' for everything else."""
    if not isinstance(t, ElementaryType):
        return ""
    if t.base == BaseKind.INTEGER:
        return "0"
    if t.base == BaseKind.BOOLEAN:
        return "false"
    if t.base == BaseKind.STRING:
        return '""'
    if t.base == BaseKind.ADDRESS:
        return "address(0)"
    if t.base == BaseKind.BYTES:
        return '""' if t.size is None else f"bytes{t.size}(0)"
    return ""


def is_identifier(text: str) -> bool:
    return bool(_IDENTIFIER_RE.match(text))


def quote_string(text: str) -> str:
    """Double-quoted Solidity string literal for ``text``."""
    escaped = text.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


class Parameter(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: SocketType
    name: str = ""
    location: Optional[str] = None
    indexed: bool = False


def parse_parameters(text: str) -> List[Parameter]:
    """Parse a free-text parameter list such as ``"address to, uint256 amount"``.

    Raises:
        TypeSyntaxError: when an entry is empty or has unexpected tokens.
    """
    if not text or not text.strip():
        return []

    params: List[Parameter] = []
    for i, piece in enumerate(text.split(","), 1):
        tokens = piece.split()
        if not tokens:
            raise TypeSyntaxError(f"parameter {i} is empty")

        type_token, rest = tokens[0], tokens[1:]
        if not is_identifier(type_token.split("[")[0]):
            raise TypeSyntaxError(f"parameter {i}: '{type_token}' is not a type")
        if type_token == "address" and rest and rest[0] == "payable":
            type_token = f"{type_token} {rest.pop(0)}"

        location = None
        indexed = False
        if rest and rest[0] in DATA_LOCATIONS:
            location = rest.pop(0)
        if rest and rest[0] == "indexed":
            indexed = True
            rest.pop(0)

        name = ""
        if rest:
            name = rest.pop(0)
            if not is_identifier(name):
                raise TypeSyntaxError(f"parameter {i}: '{name}' is not a valid name")
        if rest:
            raise TypeSyntaxError(f"parameter {i}: unexpected '{' '.join(rest)}'")

        params.append(Parameter(type=parse_type(type_token), name=name,
                                location=location, indexed=indexed))
    return params
