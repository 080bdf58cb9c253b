import logging

import pytest

from graph2sol.emitter import PLACEHOLDER_BODY, GenerationOptions, emit_source
from graph2sol.generator import available_templates, generate_graph_from_template
from graph2sol.ir import Graph
from graph2sol.nodes import create_node


def _graph(*nodes):
    g = Graph()
    for n in nodes:
        g.add_node(n)
    return g


def _emit(g, **options):
    options.setdefault("contract_name", "Demo")
    return emit_source(g, GenerationOptions(**options))


def test_single_uint_variable():
    g = _graph(create_node("uint-variable", "v", name="total", value="0"))
    assert _emit(g) == (
        "// SPDX-License-Identifier: MIT\n"
        "\n"
        "pragma solidity ^0.8.19;\n"
        "\n"
        "contract Demo {\n"
        "\n"
        "    // State variables\n"
        "    uint256 public total;\n"
        "}"
    )


def test_empty_graph_is_a_bare_contract():
    assert _emit(Graph()).splitlines()[-2:] == ["contract Demo {", "}"]


def test_erc20_template_without_constructor_node():
    g = _graph(create_node("erc20-template", "t", name="Coin", symbol="CN", totalSupply="500"))
    source = _emit(g)
    lines = source.splitlines()
    assert 'import "@openzeppelin/contracts/token/ERC20/ERC20.sol";' in lines
    assert lines.index('import "@openzeppelin/contracts/token/ERC20/ERC20.sol";') < lines.index(
        "contract Demo is ERC20 {")
    assert '    constructor() ERC20("Coin", "CN") {' in lines
    assert "        _mint(msg.sender, 500 * 10**decimals());" in lines
    assert "decimals() public" not in source


@pytest.mark.parametrize("value,expected", [
    ("0", "    uint256 public total;"),
    ("", "    uint256 public total;"),
    ("42", "    uint256 public total = 42;"),
])
def test_uint_initial_values(value, expected):
    g = _graph(create_node("uint-variable", "v", name="total", value=value))
    assert expected in _emit(g).splitlines()


def test_zero_values_are_suppressed_for_every_variable_kind():
    g = _graph(create_node("address-variable", "a", name="owner"),
               create_node("bool-variable", "b", name="paused"),
               create_node("string-variable", "s", name="label"),
               create_node("string-variable", "g", name="greeting", value='"hi"'),
               create_node("bool-variable", "o", name="open", value="true", visibility="private"))
    lines = _emit(g).splitlines()
    assert "    address public owner;" in lines
    assert "    bool public paused;" in lines
    assert "    string public label;" in lines
    assert '    string public greeting = "hi";' in lines
    assert "    bool private open = true;" in lines


def test_mapping_variable():
    g = _graph(create_node("mapping-variable", "m", name="balances"),
               create_node("mapping-variable", "n", name="owners", keyType="uint256",
                           valueType="address", visibility="internal"))
    lines = _emit(g).splitlines()
    assert "    mapping(address => uint256) public balances;" in lines
    assert "    mapping(uint256 => address) internal owners;" in lines


def test_unnamed_nodes_are_omitted():
    g = _graph(create_node("uint-variable", "v"),
               create_node("event", "e"),
               create_node("public-function", "f"))
    source = _emit(g)
    assert "uint256" not in source
    assert "event" not in source
    assert "function" not in source


def test_events():
    g = _graph(create_node("event", "e", name="Transfer",
                           parameters="address indexed from, address indexed to, uint256 value"),
               create_node("event", "p", name="Paused"))
    lines = _emit(g).splitlines()
    assert "    // Events" in lines
    assert "    event Transfer(address indexed from, address indexed to, uint256 value);" in lines
    assert "    event Paused();" in lines


def test_function_signatures():
    g = _graph(create_node("public-function", "a", name="set", parameters="uint256 x"),
               create_node("private-function", "b", name="helper"),
               create_node("view-function", "c", name="get", returns="uint256"),
               create_node("payable-function", "d", name="deposit", modifiers="onlyOwner"))
    lines = _emit(g).splitlines()
    assert "    function set(uint256 x) public {" in lines
    assert "    function helper() private {" in lines
    assert "    function get() public view returns (uint256) {" in lines
    assert "    function deposit() public payable onlyOwner {" in lines
    assert lines.count(f"        {PLACEHOLDER_BODY}") == 4


def test_functions_are_separated_by_blank_lines():
    g = _graph(create_node("public-function", "a", name="one"),
               create_node("public-function", "b", name="two"))
    lines = _emit(g).splitlines()
    i = lines.index("    function two() public {")
    assert lines[i - 1] == ""
    assert lines[i - 2] == "    }"


def test_counter_template_body():
    g = generate_graph_from_template("counter")
    lines = _emit(g, contract_name="Counter").splitlines()
    start = lines.index("    function increment() public {")
    assert lines[start:start + 5] == [
        "    function increment() public {",
        "        if (count < 100) {",
        "            count = count + 1;",
        "        }",
        "    }",
    ]
    assert "    uint256 public count;" in lines


def test_body_wired_into_function_execution_input():
    g = _graph(create_node("public-function", "f", name="reset"),
               create_node("assignment", "set", variable="total"),
               create_node("literal-value", "zero", value="0"))
    g.connect("zero", "value", "set", "value")
    g.connect("set", "exec_out", "f", "execution")
    lines = _emit(g).splitlines()
    i = lines.index("    function reset() public {")
    assert lines[i + 1:i + 3] == ["        total = 0;", "    }"]


def test_constructor_parameters_modifiers_and_body():
    g = _graph(create_node("uint-variable", "v", name="total"),
               create_node("constructor-function", "ctor", parameters="uint256 start", modifiers="payable"),
               create_node("assignment", "set", variable="total"),
               create_node("variable-reference", "start", variable="start"))
    g.connect("ctor", "execution", "set", "exec_in")
    g.connect("start", "value", "set", "value")
    lines = _emit(g).splitlines()
    i = lines.index("    constructor(uint256 start) payable {")
    assert lines[i - 1] == "    // Constructor"
    assert lines[i + 1:i + 3] == ["        total = start;", "    }"]


def test_template_constructor_runs_mint_before_own_body():
    g = _graph(create_node("erc20-template", "t", name="Coin", symbol="CN", totalSupply="500"),
               create_node("constructor-function", "ctor", parameters="address admin"),
               create_node("address-variable", "o", name="owner"),
               create_node("assignment", "set", variable="owner"),
               create_node("variable-reference", "admin", variable="admin"))
    g.connect("ctor", "execution", "set", "exec_in")
    g.connect("admin", "value", "set", "value")
    lines = _emit(g).splitlines()
    i = lines.index('    constructor(address admin) ERC20("Coin", "CN") {')
    assert lines[i + 1:i + 4] == [
        "        _mint(msg.sender, 500 * 10**decimals());",
        "        owner = admin;",
        "    }",
    ]


def test_only_the_first_constructor_is_emitted(caplog):
    g = _graph(create_node("constructor-function", "a", parameters="uint256 first"),
               create_node("constructor-function", "b", parameters="uint256 second"))
    with caplog.at_level(logging.WARNING):
        source = _emit(g)
    assert source.count("constructor(") == 1
    assert "constructor(uint256 first)" in source
    assert "2 constructor nodes" in caplog.text


def test_templates_keep_a_fixed_order():
    g = _graph(create_node("erc721-template", "nft"), create_node("erc20-template", "token"))
    lines = _emit(g).splitlines()
    imports = [line for line in lines if line.startswith("import")]
    assert imports == [
        'import "@openzeppelin/contracts/token/ERC20/ERC20.sol";',
        'import "@openzeppelin/contracts/token/ERC721/ERC721.sol";',
    ]
    assert "contract Demo is ERC20, ERC721 {" in lines
    assert '    constructor() ERC20("MyToken", "MTK") ERC721("MyNFT", "MNFT") {' in lines


def test_erc721_base_uri_and_mint_helper():
    g = generate_graph_from_template("nft")
    lines = _emit(g).splitlines()
    assert "contract Demo is ERC721 {" in lines
    assert '    constructor() ERC721("MyNFT", "MNFT") {' in lines
    assert "    // Template implementations" in lines
    i = lines.index("    function _baseURI() internal pure override returns (string memory) {")
    assert lines[i + 1] == '        return "ipfs://collection/";'
    j = lines.index("    function mint(address to, uint256 tokenId) public {")
    assert lines[j + 1] == "        _mint(to, tokenId);"
    assert j > i


def test_erc721_without_base_uri_only_adds_mint():
    g = _graph(create_node("erc721-template", "nft"))
    source = _emit(g)
    assert "_baseURI" not in source
    assert "function mint(address to, uint256 tokenId) public {" in source


def test_erc20_decimals_override():
    g = _graph(create_node("erc20-template", "t", decimals="6"))
    lines = _emit(g).splitlines()
    i = lines.index("    function decimals() public pure override returns (uint8) {")
    assert lines[i + 1] == "        return 6;"


@pytest.mark.parametrize("template", available_templates())
def test_templates_emit_balanced_braces(template):
    source = _emit(generate_graph_from_template(template))
    assert source.count("{") == source.count("}")
    assert source.endswith("}")
    assert not source.endswith("\n}\n")


def test_emission_is_deterministic():
    g = generate_graph_from_template("counter")
    assert _emit(g) == _emit(g.model_copy(deep=True))


def test_sections_follow_a_fixed_order():
    g = _graph(create_node("public-function", "f", name="go"),
               create_node("erc20-template", "t"),
               create_node("event", "e", name="Done"),
               create_node("uint-variable", "v", name="total"))
    lines = _emit(g).splitlines()
    titles = [line.strip() for line in lines if line.startswith("    // ")]
    assert titles == ["// State variables", "// Events", "// Constructor", "// Functions"]


def test_without_section_comments():
    g = _graph(create_node("uint-variable", "v", name="total"), create_node("event", "e", name="Done"))
    source = _emit(g, include_comments=False)
    assert "// State variables" not in source
    assert "// Events" not in source
    assert source.splitlines()[0] == "// SPDX-License-Identifier: MIT"


@pytest.mark.parametrize("version,pragma", [
    ("0.8.20", "pragma solidity ^0.8.20;"),
    ("^0.8.0", "pragma solidity ^0.8.0;"),
    (">=0.8.0 <0.9.0", "pragma solidity >=0.8.0 <0.9.0;"),
])
def test_pragma_versions(version, pragma):
    assert pragma in _emit(Graph(), language_version=version).splitlines()


def test_license_and_contract_name():
    source = _emit(Graph(), contract_name="Vault", license="UNLICENSED")
    assert source.startswith("// SPDX-License-Identifier: UNLICENSED\n")
    assert "contract Vault {" in source


def test_template_strings_are_escaped():
    g = _graph(create_node("erc20-template", "t", name='The "Best" Coin', symbol="B\\C"),
               create_node("erc721-template", "n", name="Art", symbol="ART", baseURI='ipfs://"x"/'))
    lines = _emit(g).splitlines()
    assert '    constructor() ERC20("The \\"Best\\" Coin", "B\\\\C") ERC721("Art", "ART") {' in lines
    assert '        return "ipfs://\\"x\\"/";' in lines
