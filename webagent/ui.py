"""Server-side HTML rendering for the agent dashboard."""

from __future__ import annotations

from html import escape

from webagent.schemas import AgentSnapshot, LogEntry, LogKind, Task, TaskStatus

REFRESH_SECONDS = 2

EMPTY_TASKS_TEXT = "No tasks generated yet."
EMPTY_LOGS_TEXT = "Logs will appear here..."
DEFAULT_WORKSPACE_TITLE = "Agent Workspace"
EMPTY_WORKSPACE_TEXT = "The agent's workspace is empty. Results from actions will appear here."

STATUS_MARKERS = {
    TaskStatus.PENDING: "&#9675;",  # ○
    TaskStatus.IN_PROGRESS: "&#9679;",  # ●
    TaskStatus.COMPLETED: "&#10003;",  # ✓
    TaskStatus.FAILED: "&#10007;",  # ✗
}

LOG_ICONS = {
    LogKind.THOUGHT: "&#128173;",
    LogKind.ACTION: "&#9889;",
    LogKind.SYSTEM: "&#9881;",
    LogKind.ERROR: "&#9888;",
    LogKind.SUCCESS: "&#10004;",
}

STYLE = """
body { background: #0f172a; color: #e2e8f0; font-family: system-ui, sans-serif; margin: 0; padding: 2rem; }
.container { max-width: 80rem; margin: 0 auto; }
.panel { background: #1e293b; border: 1px solid #334155; border-radius: 0.5rem; margin-bottom: 1.5rem; }
.panel h3 { margin: 0; padding: 1rem; border-bottom: 1px solid #334155; font-size: 1.1rem; }
.panel .body { padding: 1rem; max-height: 28rem; overflow-y: auto; }
.grid { display: grid; grid-template-columns: 1fr 2fr; gap: 1.5rem; }
.empty { color: #94a3b8; text-align: center; }
.task { display: flex; gap: 0.75rem; padding: 0.75rem; border-radius: 0.375rem; background: #0f172a; margin-bottom: 0.5rem; }
.task.current { outline: 2px solid #3b82f6; background: #1e3a5f; }
.status-completed { color: #22c55e; } .status-failed { color: #ef4444; }
.status-in-progress { color: #3b82f6; } .status-pending { color: #64748b; }
.log { display: flex; gap: 0.75rem; margin-bottom: 1rem; font-family: monospace; font-size: 0.875rem; }
.log p { margin: 0; white-space: pre-wrap; word-break: break-word; }
.log time { font-size: 0.75rem; color: #94a3b8; }
.log-thought { color: #94a3b8; } .log-action { font-weight: 600; }
.log-system { color: #94a3b8; font-style: italic; } .log-error { color: #ef4444; }
.log-success { color: #22c55e; font-weight: 600; }
.workspace-title { padding: 0.5rem 1rem; border-bottom: 1px solid #334155; color: #94a3b8; }
pre.workspace { white-space: pre-wrap; word-break: break-word; margin: 0; padding: 1rem; }
form label { display: block; margin: 1rem 0 0.5rem; color: #94a3b8; }
form input, form textarea { width: 100%; box-sizing: border-box; padding: 0.5rem; background: #0f172a; color: #e2e8f0; border: 1px solid #334155; border-radius: 0.375rem; }
form button { margin-top: 1.5rem; width: 100%; padding: 0.6rem; background: #3b82f6; color: white; border: 0; border-radius: 0.375rem; font-weight: 600; }
form button:disabled { background: #334155; color: #94a3b8; }
.deploy-error { color: #ef4444; margin: 1rem 0 0; }
.toolbar button { padding: 0.4rem 1rem; margin-right: 0.5rem; }
"""

DEPLOY_SCRIPT = """
function describeError(body, status) {
  const detail = body && body.detail;
  if (Array.isArray(detail)) return detail.map((item) => item.msg).join('; ');
  return detail || `Request failed with status ${status}`;
}

document.getElementById('deploy-form').addEventListener('submit', async (event) => {
  event.preventDefault();
  const button = document.getElementById('deploy-button');
  const error = document.getElementById('deploy-error');
  const name = document.getElementById('agent-name').value.trim();
  const goal = document.getElementById('agent-goal').value.trim();
  if (!name || !goal) return;
  button.disabled = true;
  button.textContent = 'Deploying...';
  error.hidden = true;
  const response = await fetch('/api/deploy', {
    method: 'POST',
    headers: {'Content-Type': 'application/json'},
    body: JSON.stringify({name, goal}),
  });
  if (!response.ok) {
    const body = await response.json().catch(() => null);
    error.textContent = describeError(body, response.status);
    error.hidden = false;
    button.disabled = false;
    button.textContent = 'Deploy Agent';
    return;
  }
  window.location.reload();
});
"""

CONTROL_SCRIPT = """
async function agentControl(path) {
  await fetch(path, {method: 'POST'});
  window.location.reload();
}
"""


def render_task_list(tasks: list[Task], current_task_id: int | None) -> str:
    """Render the task list panel."""
    if not tasks:
        items = f'<p class="empty">{EMPTY_TASKS_TEXT}</p>'
    else:
        rows = []
        for task in tasks:
            classes = "task current" if task.id == current_task_id else "task"
            rows.append(
                f'<div class="{classes}" data-task-id="{task.id}" data-status="{task.status.value}">'
                f'<span class="status-{task.status.value}">{STATUS_MARKERS[task.status]}</span>'
                f"<span>{escape(task.text)}</span></div>"
            )
        items = "\n".join(rows)

    return f'<section class="panel" id="task-list"><h3>Task List</h3><div class="body">{items}</div></section>'


def render_log_entry(entry: LogEntry) -> str:
    """Render one log feed entry."""
    kind = entry.kind.value
    return (
        f'<div class="log" data-log-id="{entry.id}">'
        f"<span>{LOG_ICONS[entry.kind]}</span>"
        f'<div><p class="log-{kind}"><strong>{kind.capitalize()}: </strong>{escape(entry.message)}</p>'
        f'<time>{entry.timestamp.strftime("%H:%M:%S")}</time></div></div>'
    )


def render_log_feed(logs: list[LogEntry]) -> str:
    """Render the log feed panel."""
    if not logs:
        items = f'<p class="empty">{EMPTY_LOGS_TEXT}</p>'
    else:
        items = "\n".join(render_log_entry(entry) for entry in logs)

    return f'<section class="panel" id="log-feed"><h3>Agent Logs</h3><div class="body">{items}</div></section>'


def render_workspace(title: str, content: str) -> str:
    """Render the workspace (browser view) panel."""
    return (
        '<section class="panel" id="workspace">'
        f'<div class="workspace-title" aria-label="Workspace Title">{escape(title or DEFAULT_WORKSPACE_TITLE)}</div>'
        f'<pre class="workspace" aria-live="polite">{escape(content or EMPTY_WORKSPACE_TEXT)}</pre>'
        "</section>"
    )


def render_setup(logs: list[LogEntry]) -> str:
    """Render the deploy form, plus the log feed if a deployment already logged something."""
    feed = render_log_feed(logs) if logs else ""
    return f"""
<div class="container" style="max-width: 36rem;">
  <h2 style="text-align: center;">Deploy New Agent</h2>
  <p class="empty">Define your agent's objective and give it a name.</p>
  <section class="panel"><div class="body">
    <form id="deploy-form">
      <label for="agent-name">Agent Name</label>
      <input id="agent-name" type="text" placeholder="e.g., Research Agent" required>
      <label for="agent-goal">Goal</label>
      <textarea id="agent-goal" rows="4" placeholder="e.g., Create a comprehensive report on the future of renewable energy." required></textarea>
      <button id="deploy-button" type="submit">Deploy Agent</button>
      <p id="deploy-error" class="deploy-error" role="alert" hidden></p>
    </form>
  </div></section>
  {feed}
</div>
<script>{DEPLOY_SCRIPT}</script>"""


def render_dashboard(snapshot: AgentSnapshot) -> str:
    """Render the running/finished agent view."""
    if snapshot.running:
        controls = '<button onclick="agentControl(\'/api/stop\')">Stop</button>'
    else:
        controls = '<button onclick="agentControl(\'/api/reset\')">New Agent</button>'

    return f"""
<div class="container">
  <header style="margin-bottom: 1.5rem;">
    <h1>{escape(snapshot.name)}</h1>
    <p class="empty" style="text-align: left;">{escape(snapshot.goal)}</p>
    <div class="toolbar">{controls} <span class="empty">Step {snapshot.steps_taken} of {snapshot.max_steps}</span></div>
  </header>
  <div class="grid">
    <div>{render_task_list(snapshot.tasks, snapshot.current_task_id)}</div>
    <div>
      {render_workspace(snapshot.workspace_title, snapshot.workspace_content)}
      {render_log_feed(snapshot.logs)}
    </div>
  </div>
</div>
<script>{CONTROL_SCRIPT}</script>"""


def render_page(snapshot: AgentSnapshot) -> str:
    """Render the full HTML document for the current state."""
    body = render_dashboard(snapshot) if snapshot.deployed else render_setup(snapshot.logs)
    refresh = f'<meta http-equiv="refresh" content="{REFRESH_SECONDS}">' if snapshot.running else ""
    title = escape(snapshot.name) if snapshot.deployed else "WebAgent"

    return f"""<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="utf-8">
{refresh}
<title>{title}</title>
<style>{STYLE}</style>
</head>
<body>{body}</body>
</html>
"""
