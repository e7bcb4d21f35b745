"""Run-status lookup built from dbt's ``target/run_results.json``.

A missing results file means every node is "never run". Successful results
are downgraded to "outdated" when the node's source file changed after the
run completed.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path

from .graph import LineageGraph, NodeData

logger = logging.getLogger(__name__)

RUN_RESULTS_RELATIVE_PATH = Path("target") / "run_results.json"


@dataclass(frozen=True)
class NeverRun:
    kind = "never_run"


@dataclass(frozen=True)
class Success:
    completed_at: datetime
    kind = "success"


@dataclass(frozen=True)
class Error:
    message: str
    completed_at: datetime | None = None
    kind = "error"


@dataclass(frozen=True)
class Skipped:
    completed_at: datetime | None = None
    kind = "skipped"


@dataclass(frozen=True)
class Outdated:
    run_at: datetime
    modified_at: datetime
    kind = "outdated"


RunStatus = NeverRun | Success | Error | Skipped | Outdated
RunStatusMap = dict[str, RunStatus]

NEVER_RUN = NeverRun()
STATUS_KINDS: tuple[str, ...] = ("success", "error", "skipped", "outdated", "never_run")


@dataclass(frozen=True)
class RunResult:
    unique_id: str
    status: str
    message: str | None = None
    completed_at: datetime | None = None


def _parse_timestamp(value: object) -> datetime | None:
    if not isinstance(value, str) or not value:
        return None
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _last_completed_at(timing: object) -> datetime | None:
    if not isinstance(timing, list):
        return None
    for entry in reversed(timing):
        if isinstance(entry, dict):
            parsed = _parse_timestamp(entry.get("completed_at"))
            if parsed is not None:
                return parsed
    return None


def parse_run_results(payload: object) -> list[RunResult]:
    """Decode the ``results`` array of a run_results document."""
    if not isinstance(payload, dict) or not isinstance(payload.get("results"), list):
        raise ValueError("run results document has no 'results' list")
    out: list[RunResult] = []
    for raw in payload["results"]:
        if not isinstance(raw, dict):
            continue
        unique_id = raw.get("unique_id")
        status = raw.get("status")
        if not isinstance(unique_id, str) or not isinstance(status, str):
            continue
        message = raw.get("message")
        out.append(
            RunResult(
                unique_id=unique_id,
                status=status,
                message=message if isinstance(message, str) else None,
                completed_at=_last_completed_at(raw.get("timing")),
            )
        )
    return out


def load_run_results(project_dir: Path) -> list[RunResult] | None:
    """Load run results for ``project_dir``; ``None`` when there are none yet.

    A malformed file is logged and treated like a missing one.
    """
    path = project_dir / RUN_RESULTS_RELATIVE_PATH
    if not path.exists():
        return None
    try:
        return parse_run_results(json.loads(path.read_text(encoding="utf-8")))
    except (OSError, ValueError) as exc:
        logger.warning("ignoring unreadable run results %s: %s", path, exc)
        return None


def simplify_dbt_unique_id(unique_id: str) -> str | None:
    """``model.my_project.stg_orders`` -> ``model.stg_orders``."""
    parts = unique_id.split(".")
    if len(parts) >= 3:
        return f"{parts[0]}.{parts[-1]}"
    if len(parts) == 2:
        return unique_id
    return None


def simplify_graph_unique_id(unique_id: str) -> str:
    parts = unique_id.split(".")
    if len(parts) >= 3:
        return f"{parts[0]}.{parts[-1]}"
    return unique_id


def _build_lookup(results: list[RunResult]) -> dict[str, RunResult]:
    lookup: dict[str, RunResult] = {}
    for result in results:
        simplified = simplify_dbt_unique_id(result.unique_id)
        if simplified is not None:
            lookup[simplified] = result
    return lookup


def check_freshness(node: NodeData, project_dir: Path, completed: datetime) -> Outdated | None:
    """Return ``Outdated`` when the node's file is newer than ``completed``."""
    if node.file_path is None:
        return None
    try:
        mtime = (project_dir / node.file_path).stat().st_mtime
    except OSError:
        return None
    modified = datetime.fromtimestamp(mtime, tz=timezone.utc)
    if modified > completed:
        return Outdated(run_at=completed, modified_at=modified)
    return None


def resolve_run_status(result: RunResult | None, node: NodeData, project_dir: Path) -> RunStatus:
    if result is None:
        return NEVER_RUN
    status = result.status.lower()
    if status in {"success", "pass"}:
        completed = result.completed_at or datetime.now(timezone.utc)
        return check_freshness(node, project_dir, completed) or Success(completed_at=completed)
    if status in {"error", "fail"}:
        return Error(message=result.message or "Unknown error", completed_at=result.completed_at)
    if status in {"skipped", "skip"}:
        return Skipped(completed_at=result.completed_at)
    return NEVER_RUN


def build_run_status_map(results: list[RunResult], graph: LineageGraph, project_dir: Path) -> RunStatusMap:
    """Status for every graph node, ``NeverRun`` where results are silent."""
    lookup = _build_lookup(results)
    status_map: RunStatusMap = {}
    for idx in graph.node_indices():
        node = graph[idx]
        result = lookup.get(simplify_graph_unique_id(node.unique_id))
        status_map[node.unique_id] = resolve_run_status(result, node, project_dir)
    return status_map


def merge_run_status_map(
    existing: RunStatusMap,
    results: list[RunResult],
    graph: LineageGraph,
    project_dir: Path,
) -> None:
    """Update ``existing`` in place for nodes present in ``results`` only."""
    lookup = _build_lookup(results)
    for idx in graph.node_indices():
        node = graph[idx]
        result = lookup.get(simplify_graph_unique_id(node.unique_id))
        if result is not None:
            existing[node.unique_id] = resolve_run_status(result, node, project_dir)


def load_run_status_map(graph: LineageGraph, project_dir: Path) -> RunStatusMap:
    results = load_run_results(project_dir)
    if results is None:
        return {}
    return build_run_status_map(results, graph, project_dir)


def reload_run_status(existing: RunStatusMap, graph: LineageGraph, project_dir: Path) -> bool:
    """Merge fresh results from disk into ``existing``; ``True`` if any were read."""
    results = load_run_results(project_dir)
    if results is None:
        return False
    merge_run_status_map(existing, results, graph, project_dir)
    return True


def status_symbol(status: RunStatus) -> str:
    return _STATUS_SYMBOLS[status.kind]


_STATUS_SYMBOLS = {
    "never_run": "?",
    "success": "✓",
    "error": "✗",
    "skipped": "-",
    "outdated": "~",
}


def _format_time(value: datetime) -> str:
    return value.strftime("%Y-%m-%d %H:%M:%S")


def status_label(status: RunStatus) -> str:
    if isinstance(status, Success):
        return f"Success ({_format_time(status.completed_at)})"
    if isinstance(status, Error):
        return f"Error: {status.message}"
    if isinstance(status, Skipped):
        return "Skipped"
    if isinstance(status, Outdated):
        return f"Outdated (ran {_format_time(status.run_at)})"
    return "Never run"


def last_run_at(status: RunStatus) -> datetime | None:
    if isinstance(status, Success):
        return status.completed_at
    if isinstance(status, (Error, Skipped)):
        return status.completed_at
    if isinstance(status, Outdated):
        return status.run_at
    return None
