"""Prompt and response-schema construction for the planner and agent models."""

from __future__ import annotations

import json
from typing import Any

from webagent.schemas import ActionRecord, AgentAction, Task, TaskStatus

PLANNER_INSTRUCTION = """You are an expert planner AI. Your job is to break down a user's goal into a series of simple, actionable tasks for an autonomous agent.
Focus on creating a clear, step-by-step plan. The agent can browse websites and read their content.
Do not generate tasks that involve writing code, interacting with files, or using tools other than a web browser.
The final task should always be to consolidate the findings and present the final answer to the user.
Return the tasks as a JSON object with a "tasks" array."""

AGENT_INSTRUCTION = """You are an autonomous AI agent. Your goal is to complete the tasks assigned to you.
You have access to the following tools:
1.  **google_search**: Searches Google for a query. Use this to find relevant websites.
2.  **browse**: "Opens" a webpage and returns its text content. Use this to read information from a URL.
3.  **complete_task**: Marks the current task as done. Provide a reason summarizing what you found.
4.  **finish**: Completes the overall goal with a final answer. Use this only when all tasks are done and you have a complete answer.
5.  **fail**: Declares that you are unable to complete the current task or the overall goal. Provide a reason.

**Process:**
1.  **Observe**: Review the overall goal, the full task list, the current task, and the results of your previous actions.
2.  **Think**: Formulate a plan to address the current task. Your thought process should be clear and logical.
3.  **Act**: Choose one tool to execute your plan. Provide the necessary parameters.

Return your response as a single JSON object matching the provided schema."""

TASK_LIST_SCHEMA: dict[str, Any] = {
    "type": "OBJECT",
    "properties": {
        "tasks": {
            "type": "ARRAY",
            "items": {
                "type": "STRING",
                "description": "A clear, concise, and actionable task for an AI agent to perform.",
            },
        },
    },
    "required": ["tasks"],
}

NEXT_ACTION_SCHEMA: dict[str, Any] = {
    "type": "OBJECT",
    "properties": {
        "thought": {
            "type": "STRING",
            "description": (
                "Your reasoning and plan for the next step. Think step-by-step about "
                "what you need to do to accomplish the current task."
            ),
        },
        "action": {
            "type": "OBJECT",
            "properties": {
                "tool": {
                    "type": "STRING",
                    "description": (
                        "The tool to use. Must be one of: 'google_search', 'browse', "
                        "'complete_task', 'finish', 'fail'."
                    ),
                },
                "parameters": {
                    "type": "OBJECT",
                    "properties": {
                        "query": {"type": "STRING", "description": "The search query for google_search."},
                        "url": {"type": "STRING", "description": "The URL to browse."},
                        "reason": {
                            "type": "STRING",
                            "description": "The reason for completing the task, finishing the goal or failing.",
                        },
                    },
                },
            },
            "required": ["tool"],
        },
    },
    "required": ["thought", "action"],
}

NO_HISTORY_TEXT = "No actions taken for this task yet."
HISTORY_SEPARATOR = "\n\n---\n\n"


def build_planner_prompt(goal: str) -> str:
    """Build the user prompt for task planning."""
    return f'Here is the user\'s goal: "{goal}"'


def build_search_prompt(query: str) -> str:
    """Build the user prompt for a grounded search."""
    return f'Search results for: "{query}"'


def format_action_call(action: AgentAction) -> str:
    """Render a proposed action as ``tool({json params})``."""
    params = action.action.parameters.model_dump(exclude_none=True)
    return f"{action.action.tool}({json.dumps(params, separators=(',', ':'), ensure_ascii=False)})"


def format_task_list(tasks: list[Task]) -> str:
    """Render the task list as a markdown checklist."""
    lines = []
    for task in tasks:
        mark = "x" if task.status == TaskStatus.COMPLETED else " "
        lines.append(f"- [{mark}] {task.id}: {task.text}")
    return "\n".join(lines)


def format_action_history(history: list[ActionRecord]) -> str:
    """Render previous actions for the current task."""
    if not history:
        return NO_HISTORY_TEXT

    entries = []
    for record in history:
        entries.append(
            f"Thought: {record.action.thought}\n"
            f"Action: {format_action_call(record.action)}\n"
            f"Result: {record.output}"
        )
    return HISTORY_SEPARATOR.join(entries)


def build_next_action_prompt(
    goal: str,
    tasks: list[Task],
    current_task: Task,
    history: list[ActionRecord],
) -> str:
    """Build the user prompt asking for the next thought and action.

    Args:
        goal: The overall goal
        tasks: Full task list with current statuses
        current_task: Task the agent is working on
        history: Actions already taken for the current task

    Returns:
        Prompt string
    """
    parts = ["**Overall Goal:**", goal, ""]
    parts.append("**Task List:**")
    parts.append(format_task_list(tasks))
    parts.append("")
    parts.append("**Current Task:**")
    parts.append(f"{current_task.id}: {current_task.text}")
    parts.append("")
    parts.append("**Previous Actions History for this Task:**")
    parts.append(format_action_history(history))
    parts.append("")
    parts.append("Now, determine your next thought and action to progress on the current task.")

    return "\n".join(parts)
