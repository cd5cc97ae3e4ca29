"""Configuration validation used by the wizard before generation.

``validate_project`` checks a raw (or already parsed) project configuration
against the schema, a handful of cross-field rules, and the registered
templates, and reports problems keyed by the offending field.  A valid
configuration also gets its resolved npm dependencies and a summary of the
configuration in the report.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

from pydantic import BaseModel, Field, ValidationError

from stackforge.dependencies import resolve_dependencies
from stackforge.engine.matcher import CompatibilityMatcher
from stackforge.models import Feature, Orchestration, Platform, ProjectConfig, Template


class ValidationReport(BaseModel):
    """Outcome of :func:`validate_project`."""

    valid: bool = True
    errors: dict[str, list[str]] = Field(default_factory=dict)
    warnings: dict[str, list[str]] = Field(default_factory=dict)
    template: str | None = Field(default=None, description="Template that would be used")
    dependencies: dict[str, str] = Field(default_factory=dict)
    configuration: dict[str, Any] = Field(default_factory=dict)
    suggestions: list[str] = Field(default_factory=list, description="AI suggestions, if requested")
    components: dict[str, str] = Field(
        default_factory=dict, description="AI component previews keyed by template path"
    )

    def add_error(self, key: str, message: str) -> None:
        self.errors.setdefault(key, []).append(message)
        self.valid = False

    def add_warning(self, key: str, message: str) -> None:
        self.warnings.setdefault(key, []).append(message)


def validate_project(
    data: ProjectConfig | Mapping[str, Any],
    templates: Iterable[Template],
    matcher: CompatibilityMatcher | None = None,
) -> ValidationReport:
    """Validate *data* and find the template it would be generated from."""
    report = ValidationReport()

    if isinstance(data, ProjectConfig):
        config = data
    else:
        try:
            config = ProjectConfig.model_validate(dict(data))
        except ValidationError as exc:
            for error in exc.errors():
                key = ".".join(str(part) for part in error.get("loc", ())) or "config"
                report.add_error(key, error.get("msg", "invalid value"))
            return report

    _check_features(config, report)
    _check_deployment(config, report)

    matcher = matcher or CompatibilityMatcher()
    candidates = list(templates)
    template = matcher.select(config, candidates)
    if template is None:
        if not candidates:
            report.add_error("template", "No templates are registered")
        for name, reasons in matcher.explain(config, candidates).items():
            report.add_error("template", f"{name}: {'; '.join(reasons)}")
    else:
        report.template = template.name

    if report.valid:
        report.dependencies = resolve_dependencies(config)
        report.configuration = config.model_dump(
            mode="json",
            by_alias=True,
            exclude_none=True,
            include={"name", "version", "type", "features", "tech_stack"},
        )
    return report


def _check_features(config: ProjectConfig, report: ValidationReport) -> None:
    backend = config.tech_stack.backend
    features = set(config.features)

    if Feature.AUTHENTICATION in features and (backend is None or backend.auth is None):
        report.add_error(
            "techStack.backend.auth", "Authentication feature requires an authentication method"
        )
    if Feature.API in features and backend is None:
        report.add_error("techStack.backend.framework", "API feature requires a backend framework")
    if Feature.DATABASE in features and (backend is None or backend.database is None):
        report.add_error("techStack.backend.database", "Database feature requires a database selection")

    if backend is not None and backend.database is not None and Feature.DATABASE not in features:
        report.add_warning(
            "features",
            f"{backend.database.value} is selected but the database feature is not enabled",
        )


def _check_deployment(config: ProjectConfig, report: ValidationReport) -> None:
    deployment = config.tech_stack.deployment
    if deployment.orchestration == Orchestration.KUBERNETES and deployment.containerization is None:
        report.add_error(
            "techStack.deployment.containerization",
            "Kubernetes orchestration requires a containerization choice",
        )
    if deployment.platform == Platform.VERCEL and config.tech_stack.backend is not None:
        report.add_warning(
            "techStack.deployment.platform",
            "Vercel deployment works best with frontend-only applications",
        )
