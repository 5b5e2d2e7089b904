"""Gemini REST client for task planning, next-action reasoning and search."""

from __future__ import annotations

import json
import logging
from typing import Any

import httpx
from pydantic import ValidationError

from webagent.config import Settings, get_settings
from webagent.prompts import (
    AGENT_INSTRUCTION,
    NEXT_ACTION_SCHEMA,
    PLANNER_INSTRUCTION,
    TASK_LIST_SCHEMA,
    build_next_action_prompt,
    build_planner_prompt,
    build_search_prompt,
)
from webagent.schemas import ActionRecord, AgentAction, SearchLink, SearchResult, Task

logger = logging.getLogger(__name__)

HEALTH_TIMEOUT = 5.0  # seconds


class GenerativeServiceError(Exception):
    """Raised when the generative service call fails or returns unusable output."""

    pass


def _first_candidate(payload: Any) -> dict[str, Any]:
    """Return the first candidate, or raise if the response has the wrong shape."""
    if not isinstance(payload, dict):
        raise GenerativeServiceError(f"Unexpected response type: {type(payload).__name__}")
    candidates = payload.get("candidates") or []
    if not isinstance(candidates, list) or not candidates:
        raise GenerativeServiceError("Response contained no candidates")
    candidate = candidates[0]
    if not isinstance(candidate, dict):
        raise GenerativeServiceError(f"Unexpected candidate type: {type(candidate).__name__}")
    return candidate


def _extract_text(payload: Any) -> str:
    """Concatenate the text parts of the first candidate."""
    content = _first_candidate(payload).get("content") or {}
    if not isinstance(content, dict):
        raise GenerativeServiceError("Candidate content is not an object")
    parts = content.get("parts") or []
    if not isinstance(parts, list):
        raise GenerativeServiceError("Candidate parts is not a list")
    return "".join(str(part.get("text", "")) for part in parts if isinstance(part, dict))


def _extract_links(payload: Any) -> list[SearchLink]:
    """Collect web grounding chunks of the first candidate."""
    metadata = _first_candidate(payload).get("groundingMetadata") or {}
    chunks = metadata.get("groundingChunks") if isinstance(metadata, dict) else None
    links = []
    for chunk in chunks if isinstance(chunks, list) else []:
        web = chunk.get("web") if isinstance(chunk, dict) else None
        if isinstance(web, dict) and isinstance(web.get("uri"), str) and web["uri"]:
            links.append(SearchLink(uri=web["uri"], title=str(web.get("title") or "")))
    return links


class GeminiService:
    """Client for the hosted Gemini models.

    One request is in flight at a time; every public method blocks until the
    model answers or the request fails.
    """

    def __init__(self, settings: Settings | None = None):
        """Initialize the client.

        Args:
            settings: Runtime settings (defaults to the global settings)

        Raises:
            ConfigurationError: If no API key is configured
        """
        self.settings = settings or get_settings()
        self.api_key = self.settings.require_api_key()

    def _endpoint(self, model: str) -> str:
        return f"{self.settings.base_url}/models/{model}:generateContent"

    def _headers(self) -> dict[str, str]:
        return {"x-goog-api-key": self.api_key, "Content-Type": "application/json"}

    def _generate(self, model: str, body: dict[str, Any]) -> dict[str, Any]:
        """POST a generateContent request and return the decoded body."""
        try:
            with httpx.Client(timeout=self.settings.timeout) as client:
                response = client.post(self._endpoint(model), headers=self._headers(), json=body)
                response.raise_for_status()
                return response.json()

        except httpx.ConnectError as e:
            logger.error(f"Failed to connect to Gemini: {e}")
            raise GenerativeServiceError("Gemini service unavailable") from e

        except httpx.TimeoutException as e:
            logger.error(f"Gemini request timed out after {self.settings.timeout}s")
            raise GenerativeServiceError("Gemini request timed out") from e

        except httpx.HTTPStatusError as e:
            logger.error(f"Gemini HTTP error: {e}")
            raise GenerativeServiceError(f"Gemini returned error: {e.response.status_code}") from e

        except httpx.HTTPError as e:
            logger.error(f"Gemini transport error: {e}")
            raise GenerativeServiceError("Gemini request failed") from e

        except ValueError as e:
            logger.error(f"Gemini returned a non-JSON body: {e}")
            raise GenerativeServiceError("Gemini returned a malformed response") from e

    def _generate_json(
        self,
        model: str,
        system_instruction: str,
        prompt: str,
        schema: dict[str, Any],
    ) -> Any:
        """Run a schema-constrained request and parse the JSON answer."""
        body = {
            "systemInstruction": {"parts": [{"text": system_instruction}]},
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
            "generationConfig": {
                "responseMimeType": "application/json",
                "responseSchema": schema,
            },
        }
        text = _extract_text(self._generate(model, body))
        try:
            return json.loads(text)
        except json.JSONDecodeError as e:
            raise GenerativeServiceError(f"Model returned malformed JSON: {text[:200]}") from e

    def generate_task_list(self, goal: str) -> list[str]:
        """Break a goal into task strings.

        Args:
            goal: The user's natural-language objective

        Returns:
            Task strings in planner order, or an empty list when the model
            answered without a ``tasks`` array
        """
        try:
            result = self._generate_json(
                self.settings.planner_model,
                PLANNER_INSTRUCTION,
                build_planner_prompt(goal),
                TASK_LIST_SCHEMA,
            )
        except GenerativeServiceError as e:
            logger.error(f"Error generating task list: {e}")
            raise GenerativeServiceError("Failed to generate task list from AI.") from e

        tasks = result.get("tasks") if isinstance(result, dict) else None
        if not isinstance(tasks, list):
            logger.error(f"Failed to parse tasks from response: {result!r}")
            return []

        return [str(task).strip() for task in tasks if str(task).strip()]

    def determine_next_action(
        self,
        goal: str,
        tasks: list[Task],
        current_task: Task,
        history: list[ActionRecord],
    ) -> AgentAction:
        """Ask the agent model for the next thought and tool call."""
        prompt = build_next_action_prompt(goal, tasks, current_task, history)
        try:
            result = self._generate_json(
                self.settings.agent_model,
                AGENT_INSTRUCTION,
                prompt,
                NEXT_ACTION_SCHEMA,
            )
            return AgentAction.model_validate(result)
        except (GenerativeServiceError, ValidationError) as e:
            logger.error(f"Error determining next action: {e}")
            raise GenerativeServiceError("Failed to get next action from AI.") from e

    def search(self, query: str) -> SearchResult:
        """Run a Google-grounded search and return summary plus links."""
        body = {
            "contents": [{"role": "user", "parts": [{"text": build_search_prompt(query)}]}],
            "tools": [{"google_search": {}}],
        }
        try:
            payload = self._generate(self.settings.agent_model, body)
            summary = _extract_text(payload)
            links = _extract_links(payload)
        except GenerativeServiceError as e:
            logger.error(f"Error performing Google search: {e}")
            raise GenerativeServiceError("Failed to perform Google search.") from e

        return SearchResult(summary=summary, links=links)

    def check_health(self) -> bool:
        """Check if the agent model is reachable with the configured key."""
        try:
            with httpx.Client(timeout=HEALTH_TIMEOUT) as client:
                response = client.get(
                    f"{self.settings.base_url}/models/{self.settings.agent_model}",
                    headers={"x-goog-api-key": self.api_key},
                )
                return response.status_code == 200
        except Exception:
            return False
