from __future__ import annotations

from .aggregator import RequestSummary
from .config import RunConfiguration

SUCCESS_STATUS_CODE = 200


def is_success_code(status_code: int) -> bool:
    # Only 200 counts as success; every other code, 2xx included, is an error.
    return status_code == SUCCESS_STATUS_CODE


def format_banner(config: RunConfiguration) -> str:
    lines = [
        "Initializing performance test with:",
        f"  File: {config.file}",
        f"  Users: {config.user_count}",
        f"  Interval: {config.interval_ms / 1000:g} seconds",
        f"  Length: {config.total_duration_ms / 1000:g} seconds",
        f"  Stagger: {str(config.stagger).lower()}",
        f"  Report: {str(config.report_on_exit).lower()}",
        f"  Data: {config.data_file_path or '<none>'}",
    ]
    return "\n".join(lines)


def format_summary(summary: RequestSummary) -> str:
    lines = [
        f"{summary.request_name}",
        f"  requests: {summary.count}",
        f"  average: {summary.average}ms",
        f"  min: {summary.minimum:.0f}ms",
        f"  max: {summary.maximum:.0f}ms",
        "  status codes:",
    ]
    for code in sorted(summary.code_counts):
        label = "success" if is_success_code(code) else "error"
        lines.append(f"    {code}: {summary.code_counts[code]} ({label})")
    return "\n".join(lines)


def format_report(summaries: list[RequestSummary], total_duration_ms: int) -> str:
    lines = [f"Execution stopped after {total_duration_ms / 1000:g} seconds"]
    if not summaries:
        lines.append("No requests completed.")
        return "\n".join(lines)
    for summary in summaries:
        lines.append("")
        lines.append(format_summary(summary))
    return "\n".join(lines)


__all__ = [
    "SUCCESS_STATUS_CODE",
    "format_banner",
    "format_report",
    "format_summary",
    "is_success_code",
]
