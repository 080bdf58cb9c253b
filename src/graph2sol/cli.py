import asyncio
import json
import logging
from pathlib import Path
from typing import List, Optional

import typer
from rich import print as rprint
from rich.logging import RichHandler
from rich.markup import escape
from rich.panel import Panel
from rich.syntax import Syntax
from rich.table import Table

from .compiler import CompilerSettings, SolcxCompiler, generate_contract
from .emitter import GenerationOptions, emit_source
from .errors import Graph2SolError
from .generator import available_templates, generate_graph_from_template
from .nodes import PALETTE
from .project import load_graph, load_project_yaml, new_project, save_project_yaml
from .validator import validate_graph_from_file
from .visualize import ascii_plan

app = typer.Typer(no_args_is_help=True, help="graph2sol CLI — node graphs → Solidity contracts")


@app.callback()
def main(verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging.")):
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(show_path=False)],
    )


def _options(file: Path, contract_name: Optional[str], license: Optional[str],
             solc_version: Optional[str], comments: bool) -> GenerationOptions:
    """Project settings when ``file`` is a project, overridden by CLI flags."""
    try:
        options = load_project_yaml(file).settings.generation_options(comments)
    except Graph2SolError:
        options = GenerationOptions(include_comments=comments)
    if contract_name:
        options.contract_name = contract_name
    if license:
        options.license = license
    if solc_version:
        options.language_version = solc_version
    return options


def _load(file: Path):
    try:
        return load_graph(file)
    except Graph2SolError as e:
        rprint(f"[bold red]Error:[/] {escape(str(e))}")
        raise typer.Exit(code=1)


@app.command()
def init():
    """Create a local project layout (projects/, build/)."""
    for name in ["projects", "build"]:
        Path(name).mkdir(exist_ok=True)
    rprint(Panel.fit("[bold green]Initialized[/] directories: projects/, build/"))


@app.command()
def nodes():
    """List the node types available in the palette."""
    table = Table(title="Node Palette")
    table.add_column("Type", style="cyan")
    table.add_column("Label")
    table.add_column("Controls")
    for key, layout in PALETTE.items():
        table.add_row(key, layout.label, ", ".join(layout.controls))
    rprint(table)


@app.command()
def new(name: str = typer.Option(..., help="Project name"),
        template: Optional[str] = typer.Option(None, help=f"Start from: {' | '.join(available_templates())}"),
        outdir: Path = typer.Option(Path("projects"), help="Where to place the project YAML"),
    ):
    """Create a project, optionally seeded from a built-in graph template."""
    try:
        graph = generate_graph_from_template(template) if template else None
    except Graph2SolError as e:
        rprint(f"[bold red]Error:[/] {escape(str(e))}")
        raise typer.Exit(code=1)
    project = new_project(name, graph=graph, tags=[template] if template else None)
    outdir.mkdir(exist_ok=True, parents=True)
    outfile = outdir / f"{project.settings.contract_name}.yaml"
    save_project_yaml(project, outfile)
    rprint(Panel.fit(f"Saved project [bold]{name}[/] to [cyan]{outfile}[/]"))


@app.command()
def validate(file: Path):
    """Validate a graph or project YAML (names, connections, operators, cycles)."""
    try:
        ok, messages = validate_graph_from_file(file)
    except Graph2SolError as e:
        rprint(f"[bold red]Error:[/] {escape(str(e))}")
        raise typer.Exit(code=1)
    table = Table(title="Validation Report", show_lines=True)
    table.add_column("Status", justify="center", style="bold")
    table.add_column("Message")
    for m in messages:
        status = "OK" if m.startswith("OK:") else "ERR"
        table.add_row(status, escape(m))
    rprint(table)
    if not ok:
        raise typer.Exit(code=1)


@app.command()
def explain(file: Path):
    """Print an ASCII plan of the graph."""
    print(ascii_plan(_load(file)))


@app.command()
def emit(file: Path,
         contract_name: Optional[str] = typer.Option(None, help="Contract name (defaults to the project's)."),
         license: Optional[str] = typer.Option(None, envvar="GRAPH2SOL_LICENSE", help="SPDX license identifier."),
         solc_version: Optional[str] = typer.Option(None, envvar="GRAPH2SOL_SOLC_VERSION", help="Pragma version."),
         comments: bool = typer.Option(True, help="Emit section comments."),
         out: Optional[Path] = typer.Option(None, help="Write the source here instead of printing it.")):
    """Emit Solidity source for a graph without compiling it."""
    graph = _load(file)
    source = emit_source(graph, _options(file, contract_name, license, solc_version, comments))
    if out is None:
        rprint(Syntax(source, "solidity"))
        return
    out.parent.mkdir(parents=True, exist_ok=True)
    out.write_text(source + "\n")
    rprint(Panel.fit(f"Wrote [cyan]{out}[/]"))


@app.command("compile")
def compile_(file: Path,
            contract_name: Optional[str] = typer.Option(None, help="Contract name (defaults to the project's)."),
            license: Optional[str] = typer.Option(None, envvar="GRAPH2SOL_LICENSE", help="SPDX license identifier."),
            solc_version: Optional[str] = typer.Option(None, envvar="GRAPH2SOL_SOLC_VERSION", help="Pragma and solc version."),
            optimize: bool = typer.Option(False, help="Enable the solc optimizer."),
            runs: int = typer.Option(200, help="Optimizer runs."),
            evm_version: Optional[str] = typer.Option(None, help="Target EVM version."),
            remap: Optional[List[str]] = typer.Option(None, help="Import remapping, e.g. @openzeppelin/=node_modules/@openzeppelin/"),
            outdir: Path = typer.Option(Path("build"), help="Where to write the JSON artifact.")):
    """Emit and compile a graph with solc; write ABI and bytecode to a JSON artifact."""
    graph = _load(file)
    options = _options(file, contract_name, license, solc_version, True)
    settings = CompilerSettings(optimizer_enabled=optimize, optimizer_runs=runs,
                                evm_version=evm_version, remappings=remap or [])
    compiler = SolcxCompiler(options.language_version.lstrip("^~>=< "), allow_paths=str(Path.cwd()))
    result = asyncio.run(generate_contract(graph, options, compiler, settings))

    table = Table(title=f"Compilation of {result.name}", show_lines=True)
    table.add_column("Severity", justify="center", style="bold")
    table.add_column("Message")
    for m in result.errors:
        table.add_row("[red]error[/]", escape(m))
    for m in result.warnings:
        table.add_row("[yellow]warning[/]", escape(m))
    if result.errors or result.warnings:
        rprint(table)

    if not result.compiled:
        if not result.errors:
            rprint(f"[bold red]No bytecode produced for {result.name}.[/]")
        raise typer.Exit(code=1)

    outdir.mkdir(parents=True, exist_ok=True)
    out_path = outdir / f"{result.name}.json"
    with open(out_path, "w") as f:
        json.dump(result.model_dump(mode="json", exclude={"contract_info"}), f, indent=2)
    rprint(Panel.fit(f"[bold green]Compiled[/] {result.name} → [cyan]{out_path}[/]"))


if __name__ == "__main__":
    app()
