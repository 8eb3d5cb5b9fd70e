"""Text and JSON rendering of analyses and cross-file statistics."""

from typing import Any

from rich.table import Table

from tlshunter.core.aggregator import RiskGroup
from tlshunter.models.risk import Analysis, AnalysisFailure, RiskType


def format_analysis(analysis: Analysis) -> str:
    """Render the per-file block."""
    lines = [
        f"File    : {analysis.file}",
        f"Name    : {analysis.name}",
        f"Version : Android {analysis.target_version} (target)",
        "Risks   :",
    ]
    lines.extend(f"    {i}. {risk}" for i, risk in enumerate(analysis.risks, 1))
    return "\n".join(lines)


def format_statistics(groups: list[RiskGroup]) -> str:
    """Render risk type -> reason -> contributing files."""
    lines = ["Statistics:", ""]
    for group in groups:
        lines.append(f"Risk: {group.type} Count: {group.count}")
        for reason_group in group.reasons:
            lines.append(
                f"    Reason: {reason_group.reason} Count: {len(reason_group.analyses)}"
            )
            for analysis in reason_group.analyses:
                lines.append(f"        File: {analysis.file} Name: {analysis.name}")
        lines.append("")
    return "\n".join(lines)


def risk_types_table() -> Table:
    table = Table()
    table.add_column("Type", style="cyan")
    table.add_column("Description")
    for risk_type in RiskType:
        table.add_row(str(risk_type), risk_type.description)
    return table


def build_json_report(
    analyses: list[Analysis],
    failures: list[AnalysisFailure],
    groups: list[RiskGroup] | None,
) -> dict[str, Any]:
    """Build the JSON document printed by ``scan apk --json``."""
    report: dict[str, Any] = {
        "analyses": [analysis.model_dump(mode="json") for analysis in analyses],
        "failures": [failure.model_dump(mode="json") for failure in failures],
    }
    if groups is not None:
        report["summary"] = [
            {
                "type": str(group.type),
                "description": group.type.description,
                "count": group.count,
                "reasons": [
                    {
                        "reason": reason_group.reason,
                        "count": len(reason_group.analyses),
                        "files": [a.file for a in reason_group.analyses],
                    }
                    for reason_group in group.reasons
                ],
            }
            for group in groups
        ]
    return report
