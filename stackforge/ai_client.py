"""Async client for the AI completion service.

Wraps an Ollama-compatible HTTP API (``/api/generate``, ``/api/tags``) with
timeout handling, structured responses and automatic model fallback.  The
generator uses it to analyse a project configuration before assembly and,
optionally, to polish rendered files afterwards.  Transport failures never
raise: they come back as an ``AIResponse`` with ``success=False``.

Typical usage::

    client = AIClient()
    analysis = await client.analyze_requirements(config)
    if analysis.success:
        print(analysis.content)
"""

from __future__ import annotations

import json
import re

import httpx
from pydantic import BaseModel, Field

from stackforge.models import ProjectConfig

_BULLET_RE = re.compile(r"^\s*(?:[-*]|\d+[.)])\s+(.+?)\s*$")


class AIResponse(BaseModel):
    """Structured response from a completion call."""

    content: str = Field(default="", description="Generated text")
    suggestions: list[str] = Field(default_factory=list, description="Bullet points found in the text")
    metadata: dict = Field(default_factory=dict)
    model: str = Field(default="", description="Model that produced the response")
    duration_ms: float = Field(default=0.0, description="Server-side generation time in ms")
    success: bool = Field(default=True, description="Whether the request succeeded")
    error: str | None = Field(default=None, description="Error message on failure")


class AIClient:
    """Async client for the completion service.

    Uses ``httpx.AsyncClient`` for non-blocking HTTP.  Every task-specific
    method builds a prompt and goes through :meth:`complete`, which tries
    ``model`` first and ``fallback_model`` on failure.
    """

    def __init__(
        self,
        base_url: str = "http://localhost:11434",
        model: str = "qwen2.5-coder:32b",
        fallback_model: str = "qwen2.5-coder:14b",
        timeout: int = 120,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.fallback_model = fallback_model
        self.timeout = timeout

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _client(self) -> httpx.AsyncClient:
        """Return a fresh ``AsyncClient`` configured with our base URL and timeout."""
        return httpx.AsyncClient(
            base_url=self.base_url,
            timeout=httpx.Timeout(self.timeout, connect=10.0),
        )

    @staticmethod
    def _extract_text(data: dict) -> str:
        """The non-streaming response carries the full text in ``"response"``."""
        return data.get("response", "")

    @staticmethod
    def _extract_duration_ms(data: dict) -> float:
        """``total_duration`` is reported in nanoseconds."""
        ns = data.get("total_duration", 0)
        return ns / 1_000_000.0

    @staticmethod
    def _extract_suggestions(text: str) -> list[str]:
        """Collect bullet and numbered list items from *text*."""
        suggestions = []
        for line in text.splitlines():
            match = _BULLET_RE.match(line)
            if match:
                suggestions.append(match.group(1))
        return suggestions

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    async def generate(self, prompt: str, model: str | None = None, system: str = "") -> AIResponse:
        """Run one completion against a single model."""
        model = model or self.model
        payload: dict = {
            "model": model,
            "prompt": prompt,
            "stream": False,
        }
        if system:
            payload["system"] = system

        try:
            async with self._client() as client:
                response = await client.post("/api/generate", json=payload)
                response.raise_for_status()
                data = response.json()
                text = self._extract_text(data)
                return AIResponse(
                    content=text,
                    suggestions=self._extract_suggestions(text),
                    model=data.get("model", model),
                    duration_ms=self._extract_duration_ms(data),
                    success=True,
                )
        except httpx.ConnectError:
            return AIResponse(
                model=model,
                success=False,
                error=f"Cannot connect to the AI service at {self.base_url}. Is the server running?",
            )
        except httpx.TimeoutException:
            return AIResponse(
                model=model,
                success=False,
                error=f"Request to the AI service timed out after {self.timeout}s.",
            )
        except httpx.HTTPStatusError as exc:
            return AIResponse(
                model=model,
                success=False,
                error=f"AI service returned HTTP {exc.response.status_code}: {exc.response.text[:500]}",
            )
        except Exception as exc:  # noqa: BLE001
            return AIResponse(
                model=model,
                success=False,
                error=f"Unexpected error during AI completion: {exc}",
            )

    async def complete(self, prompt: str, system: str = "") -> AIResponse:
        """Try the primary model; on failure retry once with the fallback model."""
        result = await self.generate(prompt, model=self.model, system=system)
        if result.success or not self.fallback_model or self.fallback_model == self.model:
            return result
        return await self.generate(prompt, model=self.fallback_model, system=system)

    async def is_available(self) -> bool:
        """Return ``True`` if the service responds to ``/api/tags``."""
        try:
            async with self._client() as client:
                response = await client.get("/api/tags")
                return response.status_code == 200
        except Exception:  # noqa: BLE001
            return False

    # ------------------------------------------------------------------
    # Generator tasks
    # ------------------------------------------------------------------

    async def analyze_requirements(self, config: ProjectConfig) -> AIResponse:
        """Review a project configuration and suggest improvements."""
        stack = config.tech_stack.model_dump(mode="json", by_alias=True, exclude_none=True)
        features = ", ".join(f.value for f in config.features) or "none"
        prompt = (
            "Analyze the following web application requirements and suggest improvements.\n"
            f"Project name: {config.name}\n"
            f"Description: {config.description or 'n/a'}\n"
            f"Type: {config.type.value}\n"
            f"Features: {features}\n"
            f"Tech stack:\n{json.dumps(stack, indent=2)}\n\n"
            "Answer with bullet points covering:\n"
            "1. Architecture recommendations\n"
            "2. Additional features to consider\n"
            "3. Scalability concerns\n"
            "4. Security considerations\n"
        )
        return await self.complete(prompt, system="You are a senior web application architect.")

    async def generate_component(
        self,
        template: str,
        variables: dict,
        component_type: str,
    ) -> AIResponse:
        """Produce a component from a template body and its variables."""
        prompt = (
            f"Generate a {component_type} using this template and variables.\n\n"
            f"Template:\n{template}\n\n"
            f"Variables:\n{json.dumps(variables, indent=2, default=str)}\n\n"
            "Return only the source code."
        )
        return await self.complete(prompt)

    async def optimize_code(self, code: str, context: str) -> AIResponse:
        """Improve *code* without changing its behaviour; returns code only."""
        prompt = (
            "Optimize the following code while keeping its behaviour unchanged.\n"
            f"Context: {context}\n\n"
            f"Code:\n{code}\n\n"
            "Return only the improved source code, without explanations or fences."
        )
        return await self.complete(prompt)
