"""Contract interface extraction from standard-JSON compiler output."""
from __future__ import annotations
from typing import Any, Dict, List

from pydantic import BaseModel, Field

from .types import SocketType, parse_type


class TypedName(BaseModel):
    name: str = ""
    type: SocketType
    indexed: bool = False


class FunctionSignature(BaseModel):
    name: str
    inputs: List[TypedName] = Field(default_factory=list)
    outputs: List[TypedName] = Field(default_factory=list)
    state_mutability: str = "nonpayable"


class EventDefinition(BaseModel):
    name: str
    inputs: List[TypedName] = Field(default_factory=list)


class StateVariable(BaseModel):
    name: str
    type: SocketType
    visibility: str = "internal"
    constant: bool = False
    immutable: bool = False


class StructDefinition(BaseModel):
    name: str
    members: List[TypedName] = Field(default_factory=list)


class EnumDefinition(BaseModel):
    name: str
    members: List[str] = Field(default_factory=list)


class ContractInfo(BaseModel):
    name: str
    source: str = ""
    functions: List[FunctionSignature] = Field(default_factory=list)
    events: List[EventDefinition] = Field(default_factory=list)
    state_variables: List[StateVariable] = Field(default_factory=list)
    structs: List[StructDefinition] = Field(default_factory=list)
    enums: List[EnumDefinition] = Field(default_factory=list)
    inheritance: List[str] = Field(default_factory=list)


def _typed(entries: List[Dict[str, Any]]) -> List[TypedName]:
    return [TypedName(name=e.get("name") or "", type=parse_type(e.get("type", "")),
                      indexed=bool(e.get("indexed", False)))
            for e in entries or []]


def _ast_type_name(type_name: Dict[str, Any]) -> str:
    desc = (type_name or {}).get("typeDescriptions", {}).get("typeString")
    return (type_name or {}).get("name") or desc or "unknown"


def _apply_ast(ast: Dict[str, Any], info: ContractInfo) -> None:
    for node in ast.get("nodes", []):
        if node.get("nodeType") != "ContractDefinition" or node.get("name") != info.name:
            continue
        for base in node.get("baseContracts", []):
            base_name = base.get("baseName", {})
            name = base_name.get("name") or base_name.get("namePath")
            if name:
                info.inheritance.append(name)
        for sub in node.get("nodes", []):
            kind = sub.get("nodeType")
            if kind == "VariableDeclaration" and sub.get("stateVariable"):
                info.state_variables.append(StateVariable(
                    name=sub.get("name", ""),
                    type=parse_type(_ast_type_name(sub.get("typeName"))),
                    visibility=sub.get("visibility", "internal"),
                    constant=bool(sub.get("constant", False)),
                    immutable=sub.get("mutability") == "immutable",
                ))
            elif kind == "StructDefinition":
                info.structs.append(StructDefinition(
                    name=sub.get("name", ""),
                    members=[TypedName(name=m.get("name", ""),
                                       type=parse_type(_ast_type_name(m.get("typeName"))))
                             for m in sub.get("members", [])],
                ))
            elif kind == "EnumDefinition":
                info.enums.append(EnumDefinition(
                    name=sub.get("name", ""),
                    members=[m.get("name", "") for m in sub.get("members", [])],
                ))


def extract_contract_info(output: Dict[str, Any]) -> List[ContractInfo]:
    contracts: List[ContractInfo] = []
    sources = output.get("sources") or {}
    for file_name, file_contracts in (output.get("contracts") or {}).items():
        for contract_name, data in file_contracts.items():
            info = ContractInfo(name=contract_name, source=file_name)
            for item in data.get("abi") or []:
                if item.get("type") == "function":
                    info.functions.append(FunctionSignature(
                        name=item.get("name", ""),
                        inputs=_typed(item.get("inputs")),
                        outputs=_typed(item.get("outputs")),
                        state_mutability=item.get("stateMutability", "nonpayable"),
                    ))
                elif item.get("type") == "event":
                    info.events.append(EventDefinition(
                        name=item.get("name", ""),
                        inputs=_typed(item.get("inputs")),
                    ))
            ast = (sources.get(file_name) or {}).get("ast")
            if ast:
                _apply_ast(ast, info)
            contracts.append(info)
    return contracts
