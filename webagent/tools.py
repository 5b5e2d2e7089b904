"""Tool dispatch for actions proposed by the agent model."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Protocol

from webagent.browser import MockBrowser
from webagent.schemas import AgentAction, SearchResult, TaskStatus, ToolName

logger = logging.getLogger(__name__)


class ToolParameterError(Exception):
    """Raised when a tool call lacks a required parameter."""

    pass


class SearchService(Protocol):
    def search(self, query: str) -> SearchResult: ...


@dataclass
class ToolOutcome:
    """Result of running one proposed action."""

    tool: str
    output: str | None = None
    workspace_title: str | None = None
    workspace_content: str | None = None
    task_status: TaskStatus | None = None
    finish_goal: bool = False
    reason: str = ""
    unknown: bool = False


def format_search_workspace(query: str, result: SearchResult) -> str:
    """Render search results for the workspace view."""
    links = "\n".join(f"- {link.title}: {link.uri}" for link in result.links)
    return f'Search Results for "{query}":\n\nSummary:\n{result.summary}\n\nLinks:\n{links}'


class ToolDispatcher:
    """Runs the tool named in an AgentAction."""

    def __init__(self, service: SearchService, browser: MockBrowser | None = None):
        self.service = service
        self.browser = browser if browser is not None else MockBrowser()

    def dispatch(self, action: AgentAction) -> ToolOutcome:
        """Run a proposed action.

        Args:
            action: Thought and tool call from the agent model

        Returns:
            ToolOutcome describing workspace, history and status effects

        Raises:
            ToolParameterError: If a required parameter is missing
        """
        tool = action.action.tool
        try:
            name = ToolName(tool)
        except ValueError:
            logger.warning(f"Model proposed unknown tool: {tool}")
            return ToolOutcome(tool=tool, output=f"Unknown tool: {tool}", unknown=True)

        if name == ToolName.GOOGLE_SEARCH:
            return self._dispatch_google_search(action)
        elif name == ToolName.BROWSE:
            return self._dispatch_browse(action)
        elif name == ToolName.COMPLETE_TASK:
            return ToolOutcome(
                tool=tool,
                task_status=TaskStatus.COMPLETED,
                reason=action.action.parameters.reason or "",
            )
        elif name == ToolName.FINISH:
            return ToolOutcome(
                tool=tool,
                finish_goal=True,
                reason=action.action.parameters.reason or "",
            )
        else:
            return ToolOutcome(
                tool=tool,
                task_status=TaskStatus.FAILED,
                reason=action.action.parameters.reason or "",
            )

    def _dispatch_google_search(self, action: AgentAction) -> ToolOutcome:
        query = (action.action.parameters.query or "").strip()
        if not query:
            raise ToolParameterError("Search query is required for google_search.")

        result = self.service.search(query)
        output = f"Search returned {len(result.links)} links. Summary: {result.summary}"

        return ToolOutcome(
            tool=ToolName.GOOGLE_SEARCH.value,
            output=output,
            workspace_title=f'Search: "{query}"',
            workspace_content=format_search_workspace(query, result),
        )

    def _dispatch_browse(self, action: AgentAction) -> ToolOutcome:
        url = (action.action.parameters.url or "").strip()
        if not url:
            raise ToolParameterError("URL is required for browse.")

        content = self.browser.browse(url)

        return ToolOutcome(
            tool=ToolName.BROWSE.value,
            output=f"Browsed {url}. Content: {content}",
            workspace_title=f"Browse: {url}",
            workspace_content=content,
        )
