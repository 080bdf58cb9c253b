"""Project records: a graph plus its generation settings, stored as YAML.

Exports use a JSON envelope tagged with ``PROJECT_TYPE`` so foreign files
are rejected on import.
"""
from __future__ import annotations
import json
import re
import time
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError

from .compiler import GeneratedContract
from .emitter import GenerationOptions
from .errors import ProjectFormatError
from .ir import Graph

PROJECT_TYPE = "graph2sol-project"
FORMAT_VERSION = "1.0"


def _now() -> datetime:
    return datetime.now(timezone.utc)


def new_project_id() -> str:
    return f"project_{int(time.time() * 1000)}_{uuid.uuid4().hex[:9]}"


def contract_name_for(project_name: str) -> str:
    return re.sub(r"\s+", "", project_name)


class ProjectSettings(BaseModel):
    contract_name: str = "GeneratedContract"
    solidity_version: str = "0.8.19"
    license: str = "MIT"
    optimization: bool = True

    def generation_options(self, include_comments: bool = True) -> GenerationOptions:
        return GenerationOptions(contract_name=self.contract_name,
                                 language_version=self.solidity_version,
                                 license=self.license,
                                 include_comments=include_comments)


class ProjectMetadata(BaseModel):
    created: datetime = Field(default_factory=_now)
    updated: datetime = Field(default_factory=_now)
    version: str = FORMAT_VERSION
    tags: List[str] = Field(default_factory=list)


class Project(BaseModel):
    id: str = Field(default_factory=new_project_id)
    name: str
    description: Optional[str] = None
    graph: Graph = Field(default_factory=Graph)
    generated_contract: Optional[GeneratedContract] = None
    metadata: ProjectMetadata = Field(default_factory=ProjectMetadata)
    settings: ProjectSettings = Field(default_factory=ProjectSettings)


def new_project(name: str, description: Optional[str] = None,
                graph: Optional[Graph] = None, tags: Optional[List[str]] = None) -> Project:
    return Project(
        name=name,
        description=description,
        graph=graph or Graph(),
        metadata=ProjectMetadata(tags=list(tags or [])),
        settings=ProjectSettings(contract_name=contract_name_for(name)),
    )


def duplicate_project(project: Project, new_name: str) -> Project:
    copy = project.model_copy(deep=True)
    copy.id = new_project_id()
    copy.name = new_name
    copy.metadata.created = copy.metadata.updated = _now()
    copy.settings.contract_name = contract_name_for(new_name)
    return copy


def save_project_yaml(project: Project, path: Path) -> None:
    project.metadata.updated = _now()
    path.write_text(yaml.safe_dump(project.model_dump(mode="json"), sort_keys=False))


def _read_yaml(path: Path) -> dict:
    try:
        data = yaml.safe_load(Path(path).read_text())
    except OSError as exc:
        raise ProjectFormatError(f"{path}: cannot be read ({exc.strerror})") from exc
    except yaml.YAMLError as exc:
        raise ProjectFormatError(f"{path}: not valid YAML ({exc})") from exc
    if not isinstance(data, dict):
        raise ProjectFormatError(f"{path}: expected a mapping at the top level")
    return data


def load_project_yaml(path: Path) -> Project:
    data = _read_yaml(path)
    try:
        return Project.model_validate(data)
    except ValidationError as exc:
        raise ProjectFormatError(f"{path}: {exc}") from exc


def load_graph(path: Path) -> Graph:
    """Graph from either a project file or a bare graph file."""
    data = _read_yaml(path)
    try:
        if "graph" in data:
            return Project.model_validate(data).graph
        return Graph(**data)
    except ValidationError as exc:
        raise ProjectFormatError(f"{path}: {exc}") from exc


def export_project(project: Project) -> str:
    return json.dumps({
        "version": FORMAT_VERSION,
        "type": PROJECT_TYPE,
        "data": project.model_dump(mode="json"),
    }, indent=2)


def import_project(text: str) -> Project:
    """Read an exported project; the copy gets a fresh id and timestamps."""
    try:
        envelope = json.loads(text)
    except ValueError as exc:
        raise ProjectFormatError(f"Project file is not valid JSON: {exc}") from exc
    if not isinstance(envelope, dict) or envelope.get("type") != PROJECT_TYPE:
        raise ProjectFormatError("Invalid project file format")
    try:
        project = Project.model_validate(envelope.get("data") or {})
    except ValidationError as exc:
        raise ProjectFormatError(f"Invalid project data: {exc}") from exc
    project.id = new_project_id()
    project.metadata.created = project.metadata.updated = _now()
    return project
