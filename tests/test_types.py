import pytest

from graph2sol.errors import TypeSyntaxError
from graph2sol.types import (ArrayType, BaseKind, ContractType, ElementaryType, MappingType,
                             default_value, is_compatible, parse_parameters, parse_type,
                             render_type)


@pytest.mark.parametrize("s", [
    "uint256", "int8", "address", "bool", "string", "bytes", "bytes32",
    "uint256[3]", "address[]", "mapping(address => uint256)",
])
def test_render_round_trips_canonical_forms(s):
    assert render_type(parse_type(s)) == s


def test_integer_widths_and_sign():
    t = parse_type("uint")
    assert isinstance(t, ElementaryType)
    assert t.base == BaseKind.INTEGER
    assert t.bit_width == 256 and not t.signed

    t = parse_type("int64")
    assert t.bit_width == 64 and t.signed


def test_fixed_array_of_small_ints():
    t = parse_type("uint8[4]")
    assert isinstance(t, ArrayType)
    assert t.fixed_size == 4
    assert t.element.bit_width == 8


def test_nested_mapping():
    t = parse_type("mapping(address => mapping(address => uint256))")
    assert isinstance(t, MappingType)
    assert t.key.name == "address"
    assert isinstance(t.value, MappingType)
    assert render_type(t.value) == "mapping(address => uint256)"


def test_unknown_names_become_user_types():
    t = parse_type("Ballot")
    assert isinstance(t, ContractType)
    assert t.name == "Ballot"


def test_widening_compatibility():
    assert is_compatible(parse_type("uint8"), parse_type("uint256"))
    assert not is_compatible(parse_type("uint256"), parse_type("uint8"))
    assert not is_compatible(parse_type("address"), parse_type("uint256"))
    assert is_compatible(parse_type("address"), parse_type("address"))
    assert not is_compatible(parse_type("bool"), parse_type("string"))
    assert is_compatible(parse_type("Token"), parse_type("Token"))


@pytest.mark.parametrize("s,expected", [
    ("uint256", "0"),
    ("int8", "0"),
    ("bool", "false"),
    ("string", '""'),
    ("address", "address(0)"),
    ("bytes", '""'),
    ("bytes32", "bytes32(0)"),
    ("Token", ""),
])
def test_default_values(s, expected):
    assert default_value(parse_type(s)) == expected


def test_parse_parameters():
    params = parse_parameters("address indexed from, uint256 value")
    assert [p.name for p in params] == ["from", "value"]
    assert params[0].indexed and not params[1].indexed
    assert params[1].type.bit_width == 256

    (name,) = parse_parameters("string memory name")
    assert name.location == "memory"
    assert parse_parameters("") == []
    assert parse_parameters("uint256")[0].name == ""

    (to,) = parse_parameters("address payable to")
    assert to.name == "to"
    assert to.type.base == BaseKind.ADDRESS
    assert render_type(to.type) == "address payable"
    assert is_compatible(parse_type("address payable"), parse_type("address"))


@pytest.mark.parametrize("text", ["uint256 a,,", "uint256 a b", "uint256 1abc", "(x) y", "uint256 payable to"])
def test_parse_parameters_rejects_malformed_lists(text):
    with pytest.raises(TypeSyntaxError):
        parse_parameters(text)
