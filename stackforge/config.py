"""Stackforge configuration.

Centralised, typed configuration for the generator.  All settings use
Pydantic v2 models so they can be validated at construction time and
serialised to/from JSON or environment variables without boiler-plate.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field


class AIConfig(BaseModel):
    """Configuration for the AI completion service (Ollama-compatible)."""

    enabled: bool = Field(default=True, description="Run AI analysis before assembly")
    url: str = Field(default="http://localhost:11434")
    model: str = Field(default="qwen2.5-coder:32b")
    fallback_model: str = Field(default="qwen2.5-coder:14b")
    timeout: int = Field(default=120, ge=10, description="Per-request timeout in seconds")
    polish_components: bool = Field(
        default=False, description="Pass every rendered file through optimize_code"
    )


class Config(BaseModel):
    """Global Stackforge configuration.

    Instances are typically created once by the CLI entry point and then
    passed to ``GenerationService``.
    """

    templates_dir: Path = Field(default=Path("./templates"))
    output_dir: Path = Field(default=Path("./output"))
    metadata_dir: str = Field(default=".stackforge")
    strict_includes: bool = Field(
        default=False,
        description="Raise on a missing include instead of rendering it empty",
    )
    ai: AIConfig = Field(default_factory=AIConfig)

    # ------------------------------------------------------------------
    # Serialisation helpers
    # ------------------------------------------------------------------

    def save(self, path: Path | None = None) -> Path:
        """Persist the configuration to a JSON file.

        Args:
            path: Destination file. Defaults to
                ``<output_dir>/<metadata_dir>/config.json``.

        Returns:
            The path the file was written to.
        """
        target = path or (self.output_dir / self.metadata_dir / "config.json")
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(self.model_dump_json(indent=2), encoding="utf-8")
        return target

    @classmethod
    def load(cls, path: Path) -> "Config":
        """Load a previously-saved configuration from JSON."""
        raw = Path(path).read_text(encoding="utf-8")
        return cls.model_validate_json(raw)

    @classmethod
    def from_env(cls) -> "Config":
        """Build a ``Config`` from environment variables.

        Recognised variables (all optional):
            STACKFORGE_TEMPLATES_DIR, STACKFORGE_OUTPUT_DIR,
            STACKFORGE_STRICT_INCLUDES, STACKFORGE_AI_ENABLED,
            STACKFORGE_AI_URL, STACKFORGE_AI_MODEL, STACKFORGE_AI_FALLBACK_MODEL,
            STACKFORGE_AI_TIMEOUT, STACKFORGE_AI_POLISH.
        """
        ai_kwargs: dict[str, Any] = {}
        if os.environ.get("STACKFORGE_AI_ENABLED"):
            ai_kwargs["enabled"] = _env_flag(os.environ["STACKFORGE_AI_ENABLED"])
        if os.environ.get("STACKFORGE_AI_URL"):
            ai_kwargs["url"] = os.environ["STACKFORGE_AI_URL"]
        if os.environ.get("STACKFORGE_AI_MODEL"):
            ai_kwargs["model"] = os.environ["STACKFORGE_AI_MODEL"]
        if os.environ.get("STACKFORGE_AI_FALLBACK_MODEL"):
            ai_kwargs["fallback_model"] = os.environ["STACKFORGE_AI_FALLBACK_MODEL"]
        if os.environ.get("STACKFORGE_AI_TIMEOUT"):
            ai_kwargs["timeout"] = int(os.environ["STACKFORGE_AI_TIMEOUT"])
        if os.environ.get("STACKFORGE_AI_POLISH"):
            ai_kwargs["polish_components"] = _env_flag(os.environ["STACKFORGE_AI_POLISH"])

        return cls(
            templates_dir=Path(os.environ.get("STACKFORGE_TEMPLATES_DIR", "./templates")),
            output_dir=Path(os.environ.get("STACKFORGE_OUTPUT_DIR", "./output")),
            strict_includes=_env_flag(os.environ.get("STACKFORGE_STRICT_INCLUDES", "")),
            ai=AIConfig(**ai_kwargs),
        )


def _env_flag(value: str) -> bool:
    """Interpret an environment variable as a boolean switch."""
    return value.strip().lower() in ("1", "true", "yes", "on")
