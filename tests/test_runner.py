"""Tests for the agent control loop."""

import pytest

from webagent.gemini import GenerativeServiceError
from webagent.runner import AgentRun
from webagent.schemas import LogKind, TaskStatus

from .fakes import FakeService, make_action


def _messages(run: AgentRun, kind: LogKind | None = None) -> list[str]:
    return [entry.message for entry in run.logs if kind is None or entry.kind == kind]


class TestDeploy:
    """Test planning a goal into tasks."""

    def test_deploy_creates_pending_tasks(self, fake_service, browser):
        """Tasks get 1-based ids in planner order."""
        run = AgentRun(fake_service, browser)

        assert run.deploy("Research Agent", "Compare solar and wind") is True

        assert [(t.id, t.text, t.status) for t in run.tasks] == [
            (1, "Find sources", TaskStatus.PENDING),
            (2, "Summarize findings", TaskStatus.PENDING),
        ]
        assert run.current_task_id == 1
        assert run.deployed is True
        assert run.running is True
        assert fake_service.goals == ["Compare solar and wind"]
        assert _messages(run) == [
            'Deploying agent "Research Agent" with goal: "Compare solar and wind"',
            "Generated 2 tasks.",
        ]
        assert run.logs[1].kind == LogKind.SUCCESS

    def test_deploy_empty_task_list(self, browser):
        """No tasks means the agent is not deployed."""
        run = AgentRun(FakeService(tasks=[]), browser)

        assert run.deploy("A", "Goal") is False

        assert run.deployed is False
        assert run.running is False
        assert run.logs[-1].kind == LogKind.ERROR
        assert run.logs[-1].message == "Failed to generate tasks. Please try a different goal."

    def test_deploy_service_error_logged(self, browser):
        """Planner failures are logged as errors."""
        service = FakeService(tasks=GenerativeServiceError("Failed to generate task list from AI."))
        run = AgentRun(service, browser)

        assert run.deploy("A", "Goal") is False
        assert run.logs[-1].kind == LogKind.ERROR
        assert run.logs[-1].message == "Failed to generate task list from AI."

    def test_deploy_twice_rejected(self, fake_service, browser):
        """A run can only be deployed once."""
        run = AgentRun(fake_service, browser)
        run.deploy("A", "Goal")

        with pytest.raises(RuntimeError):
            run.deploy("B", "Other goal")


class TestStep:
    """Test single iterations of the loop."""

    def test_search_updates_workspace_and_history(self, fake_service, browser):
        """A search marks the task in-progress and records the result."""
        run = AgentRun(fake_service, browser)
        run.deploy("A", "Goal")

        assert run.step() is True

        assert run.tasks[0].status == TaskStatus.IN_PROGRESS
        assert run.workspace_title == 'Search: "solar vs wind cost"'
        assert "Solar report: https://example.com/solar" in run.workspace_content
        assert len(run.history) == 1
        assert run.history[0].output.startswith("Search returned 2 links.")
        assert fake_service.search_calls == ["solar vs wind cost"]

        assert "Starting task 1: Find sources" in _messages(run, LogKind.SYSTEM)
        assert _messages(run, LogKind.THOUGHT) == ["Thinking about the next step."]
        assert _messages(run, LogKind.ACTION) == ['Action: google_search({"query":"solar vs wind cost"})']

    def test_log_ids_are_monotonic(self, fake_service, browser):
        """Log ids increase by one per entry."""
        run = AgentRun(fake_service, browser)
        run.deploy("A", "Goal")
        run.run()

        assert [entry.id for entry in run.logs] == list(range(len(run.logs)))

    def test_task_scoped_logs(self, fake_service, browser):
        """Step logs reference the current task."""
        run = AgentRun(fake_service, browser)
        run.deploy("A", "Goal")
        run.step()

        step_logs = [e for e in run.logs if e.kind in (LogKind.THOUGHT, LogKind.ACTION)]
        assert all(e.task_id == 1 for e in step_logs)

    def test_browse_uses_mock_browser(self, browser):
        """Browse shows the mocked page in the workspace."""
        service = FakeService(actions=[make_action("browse", url="https://example.com")])
        run = AgentRun(service, browser)
        run.deploy("A", "Goal")

        assert run.step() is True

        assert run.workspace_title == "Browse: https://example.com"
        assert run.workspace_content.startswith("Content of https://example.com.")
        assert run.history[0].output.startswith("Browsed https://example.com.")

    def test_history_passed_to_next_call(self, browser):
        """Previous actions for the task are sent with the next request."""
        service = FakeService(
            actions=[
                make_action("google_search", query="q1"),
                make_action("google_search", query="q2"),
            ]
        )
        run = AgentRun(service, browser)
        run.deploy("A", "Goal")
        run.step()
        run.step()

        assert [len(history) for _, history in service.action_calls] == [0, 1]

    def test_step_when_not_running(self, fake_service, browser):
        """Undeployed runs do nothing."""
        run = AgentRun(fake_service, browser)
        assert run.step() is False
        assert fake_service.action_calls == []


class TestTermination:
    """Test the ways a run ends."""

    def test_finish_completes_open_tasks(self, fake_service, browser):
        """Finish completes pending and in-progress tasks."""
        run = AgentRun(fake_service, browser)
        run.deploy("A", "Goal")
        run.run()

        assert [t.status for t in run.tasks] == [TaskStatus.COMPLETED, TaskStatus.COMPLETED]
        assert run.running is False
        assert run.current_task_id is None
        assert "Agent finished goal: Solar is cheaper." in _messages(run, LogKind.SUCCESS)
        assert run.all_completed is True

    def test_finish_keeps_failed_status(self, browser):
        """Finish never overwrites a task that already failed."""
        service = FakeService(actions=[make_action("finish", reason="done")])
        run = AgentRun(service, browser)
        run.deploy("A", "Goal")
        run.tasks[1].status = TaskStatus.FAILED
        run.run()

        assert [t.status for t in run.tasks] == [TaskStatus.COMPLETED, TaskStatus.FAILED]

    def test_fail_marks_current_task(self, browser):
        """Fail halts the loop with the current task failed."""
        service = FakeService(actions=[make_action("fail", reason="No data available")])
        run = AgentRun(service, browser)
        run.deploy("A", "Goal")
        run.run()

        assert [t.status for t in run.tasks] == [TaskStatus.FAILED, TaskStatus.PENDING]
        assert run.running is False
        assert run.current_task_id is None
        assert "Agent failed task: No data available" in _messages(run, LogKind.ERROR)
        assert run.all_completed is False

    def test_complete_task_advances(self, browser):
        """Completing a task moves to the next pending one with fresh history."""
        service = FakeService(
            actions=[
                make_action("google_search", query="q"),
                make_action("complete_task", reason="Found sources"),
                make_action("complete_task", reason="Summarized"),
            ]
        )
        run = AgentRun(service, browser)
        run.deploy("A", "Goal")

        assert run.step() is True
        assert run.step() is True
        assert run.current_task_id == 2
        assert run.history == []
        assert run.tasks[0].status == TaskStatus.COMPLETED

        assert run.step() is False
        assert run.tasks[1].status == TaskStatus.COMPLETED
        assert run.current_task_id is None
        assert _messages(run, LogKind.SUCCESS)[-1] == "All tasks completed!"
        assert "Task completed: Found sources" in _messages(run, LogKind.SUCCESS)
        assert service.action_calls[2] == (2, [])

    def test_missing_search_query_is_terminal(self, browser):
        """A tool call without its required parameter fails the task."""
        service = FakeService(actions=[make_action("google_search")])
        run = AgentRun(service, browser)
        run.deploy("A", "Goal")
        run.run()

        assert run.tasks[0].status == TaskStatus.FAILED
        assert run.running is False
        assert _messages(run, LogKind.ERROR) == ["Search query is required for google_search."]

    def test_service_error_is_terminal(self, browser):
        """A failing model call fails the task and stops."""
        service = FakeService(actions=[GenerativeServiceError("Failed to get next action from AI.")])
        run = AgentRun(service, browser)
        run.deploy("A", "Goal")
        run.run()

        assert run.tasks[0].status == TaskStatus.FAILED
        assert run.tasks[1].status == TaskStatus.PENDING
        assert run.logs[-1].kind == LogKind.ERROR
        assert run.logs[-1].message == "Failed to get next action from AI."
        assert run.logs[-1].task_id == 1

    def test_unknown_tool_continues(self, browser):
        """Unknown tools are reported back to the model."""
        service = FakeService(
            actions=[
                make_action("dance"),
                make_action("finish", reason="ok"),
            ]
        )
        run = AgentRun(service, browser)
        run.deploy("A", "Goal")

        assert run.step() is True
        assert "Unknown tool: dance" in _messages(run, LogKind.ERROR)
        assert run.history[0].output == "Unknown tool: dance"

        run.run()
        assert run.all_completed is True

    def test_step_budget_exhausted(self, browser):
        """The loop stops once the step budget is spent."""
        service = FakeService(actions=[])
        run = AgentRun(service, browser, max_steps=3)
        run.deploy("A", "Goal")
        run.run()

        assert run.steps_taken == 3
        assert len(service.action_calls) == 3
        assert run.tasks[0].status == TaskStatus.FAILED
        assert run.running is False
        assert run.logs[-1].message == "Reached the maximum of 3 steps without finishing."


class TestCancel:
    """Test stopping a run."""

    def test_cancel_discards_in_flight_result(self, browser):
        """A result arriving after cancel() is dropped."""

        class CancellingService(FakeService):
            run: AgentRun

            def determine_next_action(self, goal, tasks, current_task, history):
                self.run.cancel()
                return make_action("finish", reason="too late")

        service = CancellingService()
        run = AgentRun(service, browser)
        service.run = run
        run.deploy("A", "Goal")

        assert run.step() is False

        assert run.running is False
        assert _messages(run, LogKind.THOUGHT) == []
        assert run.tasks[0].status == TaskStatus.IN_PROGRESS
        assert "Agent stopped by user." in _messages(run, LogKind.SYSTEM)

    def test_cancel_is_idempotent(self, fake_service, browser):
        """Cancelling twice logs once."""
        run = AgentRun(fake_service, browser)
        run.deploy("A", "Goal")
        run.cancel()
        run.cancel()

        assert _messages(run).count("Agent stopped by user.") == 1
        assert run.step() is False


class TestViews:
    """Test snapshots and log listeners."""

    def test_on_log_receives_every_entry(self, fake_service, browser):
        """The listener sees entries in order."""
        seen = []
        run = AgentRun(fake_service, browser, on_log=seen.append)
        run.deploy("A", "Goal")
        run.run()

        assert [e.id for e in seen] == [e.id for e in run.logs]

    def test_snapshot_is_a_copy(self, fake_service, browser):
        """Mutating a snapshot leaves the run untouched."""
        run = AgentRun(fake_service, browser, max_steps=7)
        run.deploy("A", "Goal")

        snapshot = run.snapshot()
        snapshot.tasks[0].status = TaskStatus.FAILED

        assert run.tasks[0].status == TaskStatus.PENDING
        assert snapshot.max_steps == 7
        assert snapshot.deployed is True
        assert snapshot.current_task_id == 1
