"""Bridge between emitted source and an external Solidity compiler.

``generate_contract`` never raises: any failure becomes a single synthetic
entry in ``GeneratedContract.errors`` next to the best-effort source.
"""
from __future__ import annotations
import asyncio
import json
import logging
from typing import Any, Dict, List, Optional, Protocol

from pydantic import BaseModel, ConfigDict, Field

from .abi import ContractInfo, extract_contract_info
from .emitter import GenerationOptions, emit_source
from .errors import CompilerServiceError, Graph2SolError
from .ir import Graph
from .types import is_identifier

log = logging.getLogger(__name__)

OUTPUT_SELECTION = [
    "abi",
    "evm.bytecode",
    "evm.deployedBytecode",
    "evm.gasEstimates",
    "metadata",
]


class CompilerSettings(BaseModel):
    solc_version: Optional[str] = None  # defaults to the pragma version
    optimizer_enabled: bool = False
    optimizer_runs: int = 200
    evm_version: Optional[str] = None
    remappings: List[str] = Field(default_factory=list)


class GeneratedContract(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    source_code: str
    abi: Optional[List[Dict[str, Any]]] = None
    bytecode: Optional[str] = None
    deployed_bytecode: Optional[str] = None
    gas_estimates: Optional[Dict[str, Any]] = None
    metadata: Optional[Dict[str, Any]] = None
    contract_info: Optional[ContractInfo] = None
    errors: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)

    @property
    def compiled(self) -> bool:
        return self.bytecode is not None and not self.errors


class CompilerService(Protocol):
    async def compile(self, standard_json: Dict[str, Any]) -> Dict[str, Any]:
        ...


class SolcxCompiler:
    """``CompilerService`` backed by a local solc binary managed by py-solc-x."""

    def __init__(self, version: Optional[str] = None, install: bool = True,
                 allow_paths: Optional[str] = None, base_path: Optional[str] = None):
        self.version = version
        self.install = install
        self.allow_paths = allow_paths
        self.base_path = base_path

    async def compile(self, standard_json: Dict[str, Any]) -> Dict[str, Any]:
        return await asyncio.to_thread(self._compile, standard_json)

    def _ensure_installed(self) -> None:
        import solcx

        installed = {str(v) for v in solcx.get_installed_solc_versions()}
        if self.version not in installed:
            if not self.install:
                raise CompilerServiceError(f"solc {self.version} is not installed.")
            log.info("Installing solc %s", self.version)
            solcx.install_solc(self.version)

    def _compile(self, standard_json: Dict[str, Any]) -> Dict[str, Any]:
        import solcx
        from solcx.exceptions import SolcError

        if self.version:
            self._ensure_installed()
        try:
            return solcx.compile_standard(
                standard_json,
                solc_version=self.version,
                allow_paths=self.allow_paths,
                base_path=self.base_path,
            )
        except SolcError as exc:
            # compile_standard raises on error diagnostics; keep solc's JSON so
            # the diagnostics can still be reported one by one
            stdout = getattr(exc, "stdout_data", None)
            if stdout:
                try:
                    return json.loads(stdout)
                except ValueError:
                    pass
            raise CompilerServiceError(str(exc)) from exc


def build_compiler_input(source_code: str, contract_name: str,
                         settings: Optional[CompilerSettings] = None) -> Dict[str, Any]:
    settings = settings or CompilerSettings()
    compiler_settings: Dict[str, Any] = {
        "optimizer": {"enabled": settings.optimizer_enabled, "runs": settings.optimizer_runs},
        "outputSelection": {"*": {"*": list(OUTPUT_SELECTION), "": ["ast"]}},
    }
    if settings.evm_version:
        compiler_settings["evmVersion"] = settings.evm_version
    if settings.remappings:
        compiler_settings["remappings"] = list(settings.remappings)
    return {
        "language": "Solidity",
        "sources": {f"{contract_name or 'Contract'}.sol": {"content": source_code}},
        "settings": compiler_settings,
    }


def _hex(value: Optional[str]) -> Optional[str]:
    if not value:
        return None
    return value if value.startswith("0x") else "0x" + value


def partition_diagnostics(output: Dict[str, Any]):
    """Split compiler diagnostics into (errors, warnings) message lists."""
    errors, warnings = [], []
    for diag in output.get("errors") or []:
        severity = diag.get("severity")
        message = diag.get("message") or diag.get("formattedMessage") or ""
        if severity == "error":
            errors.append(message)
        elif severity == "warning":
            warnings.append(message)
        else:
            log.info("solc %s: %s", severity, message)
    return errors, warnings


def contract_from_output(name: str, source_code: str, output: Dict[str, Any]) -> GeneratedContract:
    errors, warnings = partition_diagnostics(output)

    data = None
    for file_contracts in (output.get("contracts") or {}).values():
        if name in file_contracts:
            data = file_contracts[name]
            break
    if data is None:
        log.info("Contract '%s' not found in compiler output", name)
        return GeneratedContract(name=name, source_code=source_code, abi=[],
                                 errors=errors, warnings=warnings)

    evm = data.get("evm") or {}
    metadata = data.get("metadata")
    if isinstance(metadata, str):
        metadata = json.loads(metadata) if metadata else None
    info = next((c for c in extract_contract_info(output) if c.name == name), None)
    return GeneratedContract(
        name=name,
        source_code=source_code,
        abi=list(data.get("abi") or []),
        bytecode=_hex((evm.get("bytecode") or {}).get("object")),
        deployed_bytecode=_hex((evm.get("deployedBytecode") or {}).get("object")),
        gas_estimates=evm.get("gasEstimates"),
        metadata=metadata,
        contract_info=info,
        errors=errors,
        warnings=warnings,
    )


def _version_number(version: str) -> str:
    return version.strip().lstrip("^~>=< ")


async def generate_contract(graph: Graph, options: Optional[GenerationOptions] = None,
                            compiler: Optional[CompilerService] = None,
                            settings: Optional[CompilerSettings] = None) -> GeneratedContract:
    """Emit source for ``graph`` and compile it. Always returns a result."""
    options = options or GenerationOptions()
    settings = settings or CompilerSettings()
    source_code = ""
    try:
        source_code = emit_source(graph, options)
        if not is_identifier(options.contract_name):
            raise Graph2SolError(f"'{options.contract_name}' is not a valid contract name")
        if compiler is None:
            compiler = SolcxCompiler(settings.solc_version or _version_number(options.language_version))
        request = build_compiler_input(source_code, options.contract_name, settings)
        log.debug("Submitting %s (%d bytes) to compiler", options.contract_name, len(source_code))
        output = await compiler.compile(request)
        result = contract_from_output(options.contract_name, source_code, output)
    except Exception as exc:
        log.error("Code generation failed: %s", exc)
        return GeneratedContract(name=options.contract_name, source_code=source_code,
                                 errors=[f"Code generation failed: {exc}"])

    log.info("Compiled %s: %d error(s), %d warning(s)",
             result.name, len(result.errors), len(result.warnings))
    return result
