"""
Rendering of run results for CI logs.

JSON output wraps every result in the same envelope so downstream jobs can
parse success and failure alike:

    {"status": "success" | "error", "command": ..., "data": {...} | "error": {...},
     "metadata": {"duration_ms": ..., "trace_id": ..., "api_version": ...}}
"""

import json
import uuid
from typing import Any, Dict, List, Optional

from pydantic import BaseModel

from scanguard.entities import (
    AnalysisStatus,
    BranchScanSummary,
    CommitScanResult,
    PRScanSummary,
    QualityGateStatus,
)
from scanguard.scanning.exceptions import ScanError

OUTPUT_FORMATS = ("text", "json")


def new_trace_id() -> str:
    return uuid.uuid4().hex


def build_envelope(
    command: str,
    data: Optional[BaseModel] = None,
    error: Optional[ScanError] = None,
    duration_ms: int = 0,
    trace_id: Optional[str] = None,
    api_version: str = "v1",
) -> Dict[str, Any]:
    envelope: Dict[str, Any] = {
        "status": "error" if error else "success",
        "command": command,
    }
    if error is not None:
        envelope["error"] = {"code": error.code, "message": str(error)}
    else:
        envelope["data"] = data.model_dump(mode="json") if data is not None else None
    envelope["metadata"] = {
        "duration_ms": duration_ms,
        "trace_id": trace_id or new_trace_id(),
        "api_version": api_version,
    }
    return envelope


def _short(sha: str) -> str:
    return sha[:7] if sha else "unknown"


def _icon(ok: bool) -> str:
    return "✓" if ok else "✗"


def _render_result_lines(results: List[CommitScanResult]) -> List[str]:
    lines = ["Scan results:"]
    for index, result in enumerate(results, start=1):
        ok = result.status == AnalysisStatus.SUCCESS.value
        lines.append(f"  {index}. {_icon(ok)} {_short(result.commit_sha)} - {result.status}")
        if result.error_message:
            lines.append(f"     Error: {result.error_message}")
    return lines


def render_branch_summary(summary: BranchScanSummary) -> str:
    lines = [
        f"Branch: {summary.branch}",
        f"SonarQube project: {summary.project_key}",
    ]
    if summary.no_changes:
        lines.append("No changes to scan")
        if summary.no_relevant_changes_count:
            lines.append(f"Commits without relevant changes: {summary.no_relevant_changes_count}")
        return "\n".join(lines)

    lines.append(f"Commits scanned: {summary.commits_scanned}")
    lines.append(f"Skipped (already scanned): {summary.skipped_count}")
    if summary.no_relevant_changes_count:
        lines.append(f"Commits without relevant changes: {summary.no_relevant_changes_count}")
    if summary.uncertain_shas:
        shas = ", ".join(_short(sha) for sha in summary.uncertain_shas)
        lines.append(f"Scanned without full information: {shas}")
    if summary.scan_results:
        lines.extend(_render_result_lines(summary.scan_results))
    if summary.interrupted:
        lines.append("Run was interrupted before all commits were scanned")
    return "\n".join(lines)


def render_pr_summary(summary: PRScanSummary) -> str:
    lines = [
        f"Pull request #{summary.pr_number}: {summary.pr_title}",
        f"Branch: {summary.head_branch} -> {summary.base_branch}",
        f"SonarQube project: {summary.project_key}",
        f"Commit: {_short(summary.commit_sha)}",
    ]
    if summary.no_relevant_changes:
        lines.append("No relevant changes to scan")
    elif summary.already_scanned:
        lines.append("Commit is already scanned")
    elif summary.scan_result is not None:
        result = summary.scan_result
        lines.append(
            f"Result: {_icon(result.status == AnalysisStatus.SUCCESS.value)} {result.status}"
        )
        if result.quality_gate_status is not None:
            passed = result.quality_gate_status == QualityGateStatus.OK
            lines.append(f"Quality Gate: {_icon(passed)} {result.quality_gate_status.value}")
        if result.error_message:
            lines.append(f"Error: {result.error_message}")
    if summary.interrupted:
        lines.append("Run was interrupted before the head commit scan completed")
    return "\n".join(lines)


def render_text(data: Optional[BaseModel] = None, error: Optional[ScanError] = None) -> str:
    if error is not None:
        return f"Error [{error.code}]: {error}"
    if isinstance(data, BranchScanSummary):
        return render_branch_summary(data)
    if isinstance(data, PRScanSummary):
        return render_pr_summary(data)
    return "" if data is None else data.model_dump_json(indent=2)


def render(
    output_format: str,
    command: str,
    data: Optional[BaseModel] = None,
    error: Optional[ScanError] = None,
    duration_ms: int = 0,
    trace_id: Optional[str] = None,
    api_version: str = "v1",
) -> str:
    if output_format == "json":
        envelope = build_envelope(
            command,
            data=data,
            error=error,
            duration_ms=duration_ms,
            trace_id=trace_id,
            api_version=api_version,
        )
        return json.dumps(envelope, ensure_ascii=False, indent=2)
    return render_text(data=data, error=error)
