"""Task-execution control loop for a deployed agent.

Agent Loop:
    deploy(name, goal)
         │
         ▼
    Planner model -> tasks 1..n (pending)
         │
         ▼
    ┌── step() ────────────────────────────┐
    │  current task pending -> in-progress  │
    │  agent model -> thought + action      │
    │  dispatch tool                        │
    │    search / browse -> history, loop   │
    │    complete_task   -> next task       │
    │    finish          -> all completed   │
    │    fail / error    -> task failed     │
    └───────────────────────────────────────┘

The loop is strictly sequential: one request to the model is outstanding at
a time, and results arriving after cancel() are discarded.
"""

from __future__ import annotations

import logging
import threading
from typing import Callable, Protocol

from webagent.browser import MockBrowser
from webagent.config import DEFAULT_MAX_STEPS
from webagent.prompts import format_action_call
from webagent.schemas import (
    ActionRecord,
    AgentAction,
    AgentSnapshot,
    LogEntry,
    LogKind,
    SearchResult,
    Task,
    TaskStatus,
)
from webagent.tools import ToolDispatcher, ToolOutcome

logger = logging.getLogger(__name__)

LogListener = Callable[[LogEntry], None]


class AgentService(Protocol):
    """The generative service as seen by the loop."""

    def generate_task_list(self, goal: str) -> list[str]: ...

    def determine_next_action(
        self,
        goal: str,
        tasks: list[Task],
        current_task: Task,
        history: list[ActionRecord],
    ) -> AgentAction: ...

    def search(self, query: str) -> SearchResult: ...


class AgentRun:
    """View-model and control loop for one deployed agent.

    Example:
        run = AgentRun(GeminiService())
        if run.deploy("Research Agent", "Compare solar and wind costs"):
            run.run()
        print(run.snapshot().tasks)
    """

    def __init__(
        self,
        service: AgentService,
        browser: MockBrowser | None = None,
        max_steps: int = DEFAULT_MAX_STEPS,
        on_log: LogListener | None = None,
    ):
        """Initialize an undeployed run.

        Args:
            service: Planner/agent/search service
            browser: Mock browser (a fresh one with its own cache by default)
            max_steps: Iteration budget for the whole run
            on_log: Called with every log entry as it is appended
        """
        self.service = service
        self.dispatcher = ToolDispatcher(service, browser)
        self.max_steps = max_steps
        self._on_log = on_log
        self._lock = threading.RLock()

        self.name = ""
        self.goal = ""
        self.tasks: list[Task] = []
        self.logs: list[LogEntry] = []
        self.history: list[ActionRecord] = []
        self.current_task_id: int | None = None
        self.deployed = False
        self.running = False
        self.cancelled = False
        self.steps_taken = 0
        self.workspace_title = ""
        self.workspace_content = ""

    # --- Log feed ---

    def _add_log(self, message: str, kind: LogKind, task_id: int | None = None) -> LogEntry:
        entry = LogEntry(id=len(self.logs), task_id=task_id, message=message, kind=kind)
        self.logs.append(entry)

        level = logging.WARNING if kind == LogKind.ERROR else logging.INFO
        logger.log(level, f"[{self.name or 'agent'}] {kind.value}: {message}")

        if self._on_log is not None:
            self._on_log(entry)
        return entry

    # --- Task bookkeeping ---

    def _find_task(self, task_id: int) -> Task | None:
        for task in self.tasks:
            if task.id == task_id:
                return task
        return None

    def _set_status(self, task_id: int, status: TaskStatus) -> None:
        task = self._find_task(task_id)
        if task is not None:
            task.status = status

    def _halt(self) -> None:
        self.running = False
        self.current_task_id = None

    def _advance(self) -> bool:
        """Move to the next pending task, or stop when none is left."""
        self.history = []
        for task in self.tasks:
            if task.status == TaskStatus.PENDING:
                self.current_task_id = task.id
                return True

        self._add_log("All tasks completed!", LogKind.SUCCESS)
        self._halt()
        return False

    # --- Lifecycle ---

    def deploy(self, name: str, goal: str) -> bool:
        """Plan the goal into tasks and arm the loop.

        Returns:
            True if tasks were generated and the loop may run
        """
        with self._lock:
            if self.deployed:
                raise RuntimeError("Agent is already deployed")
            self.name = name
            self.goal = goal
            self._add_log(f'Deploying agent "{name}" with goal: "{goal}"', LogKind.SYSTEM)

        try:
            task_strings = self.service.generate_task_list(goal)
        except Exception as e:
            logger.error(f"Deployment failed: {e}", exc_info=True)
            with self._lock:
                if not self.cancelled:
                    self._add_log(str(e) or "An unknown error occurred during deployment.", LogKind.ERROR)
            return False

        with self._lock:
            if self.cancelled:
                return False

            if not task_strings:
                self._add_log("Failed to generate tasks. Please try a different goal.", LogKind.ERROR)
                return False

            self.tasks = [Task(id=i, text=text) for i, text in enumerate(task_strings, start=1)]
            self._add_log(f"Generated {len(self.tasks)} tasks.", LogKind.SUCCESS)

            self.current_task_id = self.tasks[0].id
            self.deployed = True
            self.running = True
            return True

    def step(self) -> bool:
        """Run one iteration of the loop.

        Returns:
            True if the loop should continue
        """
        with self._lock:
            if not self.running or self.current_task_id is None:
                return False

            task = self._find_task(self.current_task_id)
            if task is None:
                self._add_log(f"Could not find task with ID {self.current_task_id}.", LogKind.ERROR)
                self._halt()
                return False

            if self.steps_taken >= self.max_steps:
                self._add_log(
                    f"Reached the maximum of {self.max_steps} steps without finishing.",
                    LogKind.ERROR,
                    task.id,
                )
                task.status = TaskStatus.FAILED
                self._halt()
                return False

            if task.status == TaskStatus.PENDING:
                task.status = TaskStatus.IN_PROGRESS
                self._add_log(f"Starting task {task.id}: {task.text}", LogKind.SYSTEM, task.id)

            self.steps_taken += 1
            task_id = task.id
            goal = self.goal
            tasks = [t.model_copy() for t in self.tasks]
            current = task.model_copy()
            history = list(self.history)

        try:
            action = self.service.determine_next_action(goal, tasks, current, history)
            with self._lock:
                if self.cancelled:
                    return False
                self._add_log(action.thought, LogKind.THOUGHT, task_id)
                self._add_log(f"Action: {format_action_call(action)}", LogKind.ACTION, task_id)

            outcome = self.dispatcher.dispatch(action)

        except Exception as e:
            logger.debug("Step failed", exc_info=True)
            with self._lock:
                if self.cancelled:
                    return False
                self._add_log(str(e) or "An unknown error occurred.", LogKind.ERROR, task_id)
                self._set_status(task_id, TaskStatus.FAILED)
                self._halt()
            return False

        with self._lock:
            if self.cancelled:
                return False
            return self._apply(task_id, action, outcome)

    def _apply(self, task_id: int, action: AgentAction, outcome: ToolOutcome) -> bool:
        """Apply a tool outcome to the view-model."""
        if outcome.unknown:
            self._add_log(outcome.output or f"Unknown tool: {outcome.tool}", LogKind.ERROR, task_id)
            self.history.append(ActionRecord(action=action, output=outcome.output or ""))
            return True

        if outcome.finish_goal:
            self._add_log(f"Agent finished goal: {outcome.reason}", LogKind.SUCCESS, task_id)
            for task in self.tasks:
                if task.status in (TaskStatus.PENDING, TaskStatus.IN_PROGRESS):
                    task.status = TaskStatus.COMPLETED
            self._halt()
            return False

        if outcome.task_status == TaskStatus.FAILED:
            self._add_log(f"Agent failed task: {outcome.reason}", LogKind.ERROR, task_id)
            self._set_status(task_id, TaskStatus.FAILED)
            self._halt()
            return False

        if outcome.task_status == TaskStatus.COMPLETED:
            self._add_log(f"Task completed: {outcome.reason}", LogKind.SUCCESS, task_id)
            self._set_status(task_id, TaskStatus.COMPLETED)
            return self._advance()

        if outcome.workspace_title is not None:
            self.workspace_title = outcome.workspace_title
            self.workspace_content = outcome.workspace_content or ""
        self.history.append(ActionRecord(action=action, output=outcome.output or ""))
        return True

    def run(self) -> None:
        """Step until the loop terminates."""
        while self.step():
            pass
        logger.info(f"Agent loop ended after {self.steps_taken} steps")

    def cancel(self) -> None:
        """Stop the loop and discard any in-flight result."""
        with self._lock:
            if self.cancelled:
                return
            self.cancelled = True
            if self.running:
                self._add_log("Agent stopped by user.", LogKind.SYSTEM, self.current_task_id)
            self.running = False

    # --- Views ---

    @property
    def all_completed(self) -> bool:
        """True if every task finished successfully."""
        with self._lock:
            return bool(self.tasks) and all(t.status == TaskStatus.COMPLETED for t in self.tasks)

    def snapshot(self) -> AgentSnapshot:
        """Return a consistent copy of the view-model."""
        with self._lock:
            return AgentSnapshot(
                name=self.name,
                goal=self.goal,
                deployed=self.deployed,
                running=self.running,
                current_task_id=self.current_task_id,
                tasks=[t.model_copy() for t in self.tasks],
                logs=list(self.logs),
                workspace_title=self.workspace_title,
                workspace_content=self.workspace_content,
                steps_taken=self.steps_taken,
                max_steps=self.max_steps,
            )
