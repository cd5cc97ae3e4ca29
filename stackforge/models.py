"""Pydantic v2 models for the Stackforge generator.

Defines the project configuration collected by the wizard, the template
declaration consumed by the template store, and the blueprint produced by
the assembler.  JSON payloads use camelCase keys (``techStack``,
``stateManagement``, ``preGeneration``); Python code uses snake_case
attribute names.  Both spellings are accepted on input.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from collections.abc import Mapping
from enum import Enum
from types import MappingProxyType
from typing import Any, Optional, Union

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    field_serializer,
    field_validator,
)


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------

class ProjectType(str, Enum):
    """Declared project type; a template's category must equal it."""
    WEB_APP = "web-app"
    API = "api"
    LANDING_PAGE = "landing-page"
    DASHBOARD = "dashboard"
    E_COMMERCE = "e-commerce"
    ADMIN_DASHBOARD = "admin-dashboard"


class ProjectCategory(str, Enum):
    WEB = "web"
    BACKEND = "backend"


class FrontendFramework(str, Enum):
    NEXT = "next"
    REACT = "react"
    VUE = "vue"
    ANGULAR = "angular"


class Styling(str, Enum):
    TAILWIND = "tailwind"
    SCSS = "scss"
    STYLED_COMPONENTS = "styled-components"
    CSS_MODULES = "css-modules"


class StateManagement(str, Enum):
    REDUX = "redux"
    MOBX = "mobx"
    ZUSTAND = "zustand"


class BackendFramework(str, Enum):
    EXPRESS = "express"
    NEST = "nest"
    FASTIFY = "fastify"
    KOA = "koa"


class Database(str, Enum):
    POSTGRESQL = "postgresql"
    MONGODB = "mongodb"
    MYSQL = "mysql"


class Caching(str, Enum):
    REDIS = "redis"
    MEMCACHED = "memcached"


class AuthStrategy(str, Enum):
    JWT = "jwt"
    OAUTH = "oauth"
    SESSION = "session"


class Platform(str, Enum):
    AWS = "aws"
    GCP = "gcp"
    AZURE = "azure"
    VERCEL = "vercel"


class Containerization(str, Enum):
    DOCKER = "docker"
    PODMAN = "podman"


class Orchestration(str, Enum):
    KUBERNETES = "kubernetes"
    DOCKER_COMPOSE = "docker-compose"


class CIProvider(str, Enum):
    GITHUB_ACTIONS = "github-actions"
    GITLAB_CI = "gitlab-ci"


class Feature(str, Enum):
    """Feature tags a project can request and a template can support."""
    AUTHENTICATION = "authentication"
    AUTHORIZATION = "authorization"
    DATABASE = "database"
    API = "api"
    FILE_UPLOAD = "file-upload"
    NOTIFICATIONS = "notifications"
    SEARCH = "search"
    ANALYTICS = "analytics"
    LOCALIZATION = "localization"
    PAYMENT = "payment"
    EMAIL = "email"
    SEO = "seo"
    TESTING = "testing"
    DOCUMENTATION = "documentation"


class FileKind(str, Enum):
    FILE = "file"
    DIRECTORY = "directory"


def _unique(values: Any) -> tuple[Any, ...]:
    """Drop duplicates while keeping first-appearance order."""
    seen: list[Any] = []
    for value in values:
        if value not in seen:
            seen.append(value)
    return tuple(seen)


def _as_feature(value: Any) -> Any:
    """Known tags become :class:`Feature` members; anything else is left as is."""
    try:
        return Feature(value)
    except ValueError:
        return value


# ---------------------------------------------------------------------------
# Project configuration
# ---------------------------------------------------------------------------

class FrontendStack(BaseModel):
    """Frontend choices made in the wizard."""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    framework: FrontendFramework
    styling: Optional[Styling] = None
    state_management: Optional[StateManagement] = Field(default=None, alias="stateManagement")


class BackendStack(BaseModel):
    """Backend choices made in the wizard."""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    framework: BackendFramework
    database: Optional[Database] = None
    caching: Optional[Caching] = None
    auth: Optional[AuthStrategy] = Field(
        default=None, validation_alias=AliasChoices("auth", "authentication")
    )


class DeploymentStack(BaseModel):
    """Deployment choices; the platform is always required."""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    platform: Platform
    containerization: Optional[Containerization] = None
    orchestration: Optional[Orchestration] = None
    ci: Optional[CIProvider] = None


class TechStack(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    frontend: Optional[FrontendStack] = None
    backend: Optional[BackendStack] = None
    deployment: DeploymentStack


class ProjectConfig(BaseModel):
    """Immutable input to a single generation run."""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str = Field(..., min_length=1, description="Project name")
    description: str = Field(default="", description="Short project description")
    version: str = Field(default="0.1.0")
    type: ProjectType = Field(..., description="Declared project type")
    category: ProjectCategory = Field(default=ProjectCategory.WEB)
    features: tuple[Feature, ...] = Field(default_factory=tuple)
    tech_stack: TechStack = Field(..., alias="techStack")

    @field_validator("features")
    @classmethod
    def _dedupe_features(cls, value: tuple[Feature, ...]) -> tuple[Feature, ...]:
        return _unique(value)


class ProjectMetadata(BaseModel):
    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc), alias="createdAt"
    )
    version: str = Field(default="0.1.0")
    generated_by: str = Field(default="stackforge", alias="generatedBy")

    model_config = ConfigDict(frozen=True, populate_by_name=True)


class Project(BaseModel):
    """A project configuration together with its identity."""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    config: ProjectConfig
    metadata: ProjectMetadata = Field(default_factory=ProjectMetadata)

    @classmethod
    def create(cls, config: ProjectConfig, generated_by: str = "stackforge") -> "Project":
        """Wrap *config* with freshly generated metadata."""
        return cls(
            config=config,
            metadata=ProjectMetadata(version=config.version, generated_by=generated_by),
        )


# ---------------------------------------------------------------------------
# Template declaration
# ---------------------------------------------------------------------------

class _ConstraintBlock(BaseModel):
    """Base for compatibility blocks: every slot is a literal or a list of literals."""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    @field_validator("*", mode="before")
    @classmethod
    def _literal_to_list(cls, value: Any) -> Any:
        if isinstance(value, str):
            return [value]
        return value


class FrontendCompatibility(_ConstraintBlock):
    framework: Optional[list[FrontendFramework]] = None
    styling: Optional[list[Styling]] = None
    state_management: Optional[list[StateManagement]] = Field(
        default=None, alias="stateManagement"
    )


class BackendCompatibility(_ConstraintBlock):
    framework: Optional[list[BackendFramework]] = None
    database: Optional[list[Database]] = None
    caching: Optional[list[Caching]] = None
    auth: Optional[list[AuthStrategy]] = Field(
        default=None, validation_alias=AliasChoices("auth", "authentication")
    )


class DeploymentCompatibility(_ConstraintBlock):
    platform: list[Platform] = Field(
        ..., min_length=1, validation_alias=AliasChoices("platform", "platforms")
    )
    containerization: Optional[list[Containerization]] = None
    orchestration: Optional[list[Orchestration]] = None


class TechStackCompatibility(BaseModel):
    """Which tech-stack values a template accepts.  ``None`` means unconstrained."""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    frontend: Optional[FrontendCompatibility] = None
    backend: Optional[BackendCompatibility] = None
    deployment: DeploymentCompatibility


class FileEntry(BaseModel):
    """One declared entry of a template's structure."""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    path: str = Field(..., min_length=1)
    kind: FileKind = Field(default=FileKind.FILE, alias="type")
    template: Optional[str] = Field(default=None, description="Raw template body")
    variables: dict[str, Any] = Field(default_factory=dict)

    @field_validator("path")
    @classmethod
    def _relative_path(cls, value: str) -> str:
        normalised = value.strip().replace("\\", "/")
        if not normalised or normalised.startswith("/"):
            raise ValueError(f"path must be relative: {value!r}")
        if any(part == ".." for part in normalised.split("/")):
            raise ValueError(f"path must not leave the project root: {value!r}")
        return normalised.rstrip("/") or normalised


class TemplateHooks(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    pre_generation: list[str] = Field(default_factory=list, alias="preGeneration")
    post_generation: list[str] = Field(default_factory=list, alias="postGeneration")


class TemplateStructure(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    root: str = Field(default="./")
    files: list[FileEntry] = Field(default_factory=list)
    hooks: TemplateHooks = Field(default_factory=TemplateHooks)


class Template(BaseModel):
    """A validated template declaration with its file bodies attached."""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str = Field(..., min_length=1)
    description: str = Field(default="")
    version: str = Field(default="1.0.0")
    category: ProjectType
    tech_stack: TechStackCompatibility = Field(..., alias="techStack")
    features: tuple[Union[Feature, str], ...] = Field(
        default_factory=tuple, description="Supported feature tags; unknown tags are kept as strings"
    )
    structure: TemplateStructure = Field(default_factory=TemplateStructure)

    @field_validator("features", mode="before")
    @classmethod
    def _known_features(cls, value: Any) -> Any:
        if isinstance(value, (list, tuple)):
            return [_as_feature(v) for v in value]
        return value

    @field_validator("features")
    @classmethod
    def _dedupe_template_features(cls, value: tuple[Any, ...]) -> tuple[Any, ...]:
        return _unique(value)

    @property
    def files(self) -> list[FileEntry]:
        return self.structure.files

    @property
    def pre_generation(self) -> list[str]:
        return self.structure.hooks.pre_generation

    @property
    def post_generation(self) -> list[str]:
        return self.structure.hooks.post_generation


# ---------------------------------------------------------------------------
# Blueprint
# ---------------------------------------------------------------------------

class BlueprintMetadata(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    project_id: str = Field(..., alias="projectId")
    generated_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc), alias="generatedAt"
    )
    ai_analysis: Optional[dict[str, Any]] = Field(default=None, alias="aiAnalysis")


class StructureEntry(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    path: str
    kind: FileKind = Field(alias="type")


class Blueprint(BaseModel):
    """Output of one generation run.  Never mutated after it is returned."""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    metadata: BlueprintMetadata
    template: str
    components: Mapping[str, str] = Field(default_factory=dict, validate_default=True)
    structure: tuple[StructureEntry, ...] = Field(default_factory=tuple)
    configuration: ProjectConfig

    @field_validator("components")
    @classmethod
    def _read_only_components(cls, value: Mapping[str, str]) -> Mapping[str, str]:
        return MappingProxyType(dict(value))

    @field_serializer("components")
    def _dump_components(self, value: Mapping[str, str]) -> dict[str, str]:
        return dict(value)

    @property
    def directories(self) -> list[str]:
        return [e.path for e in self.structure if e.kind == FileKind.DIRECTORY]

    @property
    def files(self) -> dict[str, str]:
        """Components that correspond to file entries (directories excluded)."""
        dirs = set(self.directories)
        return {path: body for path, body in self.components.items() if path not in dirs}
