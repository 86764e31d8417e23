"""AI service client that answers repository analysis questions."""

from __future__ import annotations

import asyncio
import json
import time
from typing import Any

import requests

from repolens.errors import ConfigurationError, UpstreamServiceError
from repolens.llm.base import ChatProvider, Completion
from repolens.llm.credentials import ClientCredentialsTokenCache
from repolens.utils.logging import get_logger
from repolens.utils.monitoring import record_upstream_latency

logger = get_logger(__name__)

DEFAULT_MODEL = "CLAUDE_SONET_3_7_v1"

# used by generate() when the caller passes no system prompt
DEFAULT_SYSTEM_PROMPT = """You are a GitHub repository analysis assistant. Your role is to analyze GitHub repositories and provide detailed insights about code quality, structure, dependencies, and potential improvements. Help users with:
1. Code analysis and quality assessment
2. Repository structure and organization evaluation
3. Dependency analysis and security insights
4. Documentation quality review
5. Best practices recommendations
6. Performance optimization suggestions
7. Security vulnerability identification
8. Code maintainability assessment

Keep responses detailed, technical, and focused on actionable insights for repository improvement."""

ANALYST_PERSONA = """You are a GitHub repository analysis assistant. Analyze the provided repository data and respond to the user's query with detailed insights about:
- Code quality and structure
- Dependencies and security
- Documentation quality
- Best practices compliance
- Performance considerations
- Maintainability assessment"""


def build_system_prompt(context: Any) -> str:
    """Persona instruction followed by the repository context as indented JSON."""
    serialized = json.dumps(context, indent=2, default=str)
    return f"{ANALYST_PERSONA}\n\nRepository data: {serialized}"


class AnalysisClient(ChatProvider):
    """
    Completion client for the AI service.

    Every request carries a bearer token from the shared token cache and one
    request item targeting ``model``. Failures are raised as
    ``UpstreamServiceError``; nothing is retried here.
    """

    def __init__(
        self,
        service_url: str | None,
        credentials: ClientCredentialsTokenCache,
        model: str = DEFAULT_MODEL,
        timeout: float = 60.0,
        session: requests.Session | None = None,
    ) -> None:
        self.service_url = service_url
        self.credentials = credentials
        self.model = model
        self.timeout = timeout
        self._session = session or requests.Session()

    @classmethod
    def from_config(
        cls,
        config: dict[str, Any],
        credentials: ClientCredentialsTokenCache,
        session: requests.Session | None = None,
    ) -> "AnalysisClient":
        ai = config.get("ai", {})
        return cls(
            service_url=ai.get("service_url"),
            credentials=credentials,
            model=ai.get("model") or DEFAULT_MODEL,
            timeout=float(ai.get("timeout_seconds", 60.0)),
            session=session,
        )

    def build_request(self, query: str, system_prompt: str | None = None) -> dict[str, Any]:
        return {
            "requests": [
                {
                    "targetModel": self.model,
                    "parameters": {
                        "messages": [
                            {"role": "system", "content": system_prompt or DEFAULT_SYSTEM_PROMPT},
                            {"role": "user", "content": query},
                        ],
                    },
                }
            ]
        }

    async def generate(self, query: str, system_prompt: str | None = None) -> Completion:
        """Send one completion request; ``system_prompt`` defaults to DEFAULT_SYSTEM_PROMPT."""
        if not self.service_url:
            raise ConfigurationError("Missing AI service URL. Set AI_SERVICE_URL.", config_key="ai.service_url")
        token = await self.credentials.get_token()
        start = time.perf_counter()
        try:
            resp = await asyncio.to_thread(
                self._session.post,
                self.service_url,
                json=self.build_request(query, system_prompt),
                headers={"Authorization": f"Bearer {token}", "Content-Type": "application/json"},
                timeout=self.timeout,
            )
        except requests.Timeout as e:
            raise UpstreamServiceError(f"AI service timed out after {self.timeout}s") from e
        except requests.RequestException as e:
            raise UpstreamServiceError(f"AI service unreachable: {e}") from e
        finally:
            record_upstream_latency("ai_service", time.perf_counter() - start)

        if not resp.ok:
            logger.error("ai_service_error", status=resp.status_code)
            if resp.status_code == 401:
                # revoked or rotated token; the next call exchanges again
                self.credentials.invalidate()
            raise UpstreamServiceError(
                f"Failed to generate response: {resp.status_code} {resp.reason or ''}".rstrip(),
                status=resp.status_code,
                body=resp.text,
            )
        try:
            data = resp.json()
        except ValueError as e:
            raise UpstreamServiceError("AI service returned invalid JSON", status=resp.status_code, body=resp.text) from e

        completion = Completion(
            content=data.get("content") or "",
            model_id=data.get("modelId"),
            prompt_tokens=data.get("promptTokens"),
            output_tokens=data.get("outputTokens"),
            total_tokens=data.get("totalTokens"),
            response_id=data.get("responseId"),
        )
        logger.info("ai_completion", model_id=completion.model_id, total_tokens=completion.total_tokens)
        return completion

    async def analyze_repository(self, context: Any, query: str) -> Completion:
        """Answer ``query`` with ``context`` embedded in the system prompt."""
        return await self.generate(query, build_system_prompt(context))
