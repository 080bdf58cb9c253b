import json

import pytest


class FakeCompiler:
    """Stands in for solc: records requests and replays a canned output."""

    def __init__(self, output=None, exc=None):
        self.output = output or {}
        self.exc = exc
        self.requests = []

    async def compile(self, standard_json):
        self.requests.append(standard_json)
        if self.exc is not None:
            raise self.exc
        return self.output


def solc_output(name="Demo", errors=(), abi=None):
    abi = abi if abi is not None else [
        {"type": "function", "name": "total", "inputs": [],
         "outputs": [{"name": "", "type": "uint256"}], "stateMutability": "view"},
        {"type": "event", "name": "Bumped", "anonymous": False,
         "inputs": [{"name": "by", "type": "address", "indexed": True}]},
    ]
    return {
        "errors": list(errors),
        "contracts": {f"{name}.sol": {name: {
            "abi": abi,
            "evm": {
                "bytecode": {"object": "6080604052"},
                "deployedBytecode": {"object": "0x60806040"},
                "gasEstimates": {"creation": {"totalCost": "infinite"}},
            },
            "metadata": json.dumps({"language": "Solidity", "version": 1}),
        }}},
        "sources": {f"{name}.sol": {"id": 0, "ast": {"nodeType": "SourceUnit", "nodes": [{
            "nodeType": "ContractDefinition",
            "name": name,
            "baseContracts": [{"baseName": {"name": "ERC20"}}],
            "nodes": [
                {"nodeType": "VariableDeclaration", "stateVariable": True, "name": "total",
                 "visibility": "public", "typeName": {"name": "uint256"}},
                {"nodeType": "VariableDeclaration", "stateVariable": True, "name": "balances",
                 "visibility": "public", "typeName": {
                     "nodeType": "Mapping",
                     "typeDescriptions": {"typeString": "mapping(address => uint256)"}}},
                {"nodeType": "StructDefinition", "name": "Entry", "members": [
                    {"name": "owner", "typeName": {"name": "address"}}]},
                {"nodeType": "EnumDefinition", "name": "Phase", "members": [
                    {"name": "Open"}, {"name": "Closed"}]},
            ],
        }]}}},
    }


@pytest.fixture
def fake_compiler():
    return FakeCompiler


@pytest.fixture
def make_output():
    return solc_output
