"""CLI commands for TLS risk scanning."""

import json
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

import typer

from tlshunter.cli.report import (
    build_json_report,
    format_analysis,
    format_statistics,
    risk_types_table,
)
from tlshunter.core.aggregator import RiskAggregator
from tlshunter.core.analysis import TLSAnalyzer
from tlshunter.exceptions import TLSHunterError
from tlshunter.models.risk import Analysis, AnalysisFailure, RiskType
from tlshunter.utils.config import ScanSettings
from tlshunter.utils.output import console

app = typer.Typer(no_args_is_help=True)


def _analyze_one(analyzer: TLSAnalyzer, apk_path: Path) -> Analysis | AnalysisFailure:
    try:
        return analyzer.analyze(apk_path)
    except TLSHunterError as e:
        return AnalysisFailure(file=str(apk_path), error=str(e))
    except Exception as e:
        # One hostile file must not abort the batch
        return AnalysisFailure(
            file=str(apk_path), error=f"Unexpected error: {type(e).__name__}: {e}"
        )


@app.command("apk")
def scan_apks(
    apk_paths: list[Path] = typer.Argument(
        ...,
        help="APK files to analyze.",
    ),
    json_output: bool = typer.Option(
        False,
        "--json",
        "-j",
        help="Output as JSON.",
    ),
    workers: int = typer.Option(
        1,
        "--workers",
        "-w",
        min=1,
        help="Number of files analyzed in parallel.",
    ),
    no_summary: bool = typer.Option(
        False,
        "--no-summary",
        help="Do not print the cross-file statistics.",
    ),
    expiration_days: int | None = typer.Option(
        None,
        "--expiration-days",
        min=0,
        help="Report pin sets expiring within this many days (default: 10).",
    ),
    max_entry_size: int | None = typer.Option(
        None,
        "--max-entry-size",
        min=1,
        help="Largest APK entry read, in bytes (default: 1 MiB).",
    ),
) -> None:
    """Flag TLS misconfigurations in APK files.

    Evaluates each application's manifest and network security config
    against the defaults of its target Android version. Files that cannot
    be decoded are reported and skipped; the exit status is 1 if any file
    failed.
    """
    console.set_json_mode(json_output)

    settings = ScanSettings.from_config(
        expiration_threshold_days=expiration_days,
        max_entry_size=max_entry_size,
    )
    analyzer = TLSAnalyzer(settings)
    aggregator = RiskAggregator()

    with ThreadPoolExecutor(max_workers=workers) as executor:
        results = list(executor.map(lambda p: _analyze_one(analyzer, p), apk_paths))

    analyses: list[Analysis] = []
    failures: list[AnalysisFailure] = []
    for result in results:
        if isinstance(result, AnalysisFailure):
            failures.append(result)
            console.print_error(f"Cannot analyze {result.file}: {result.error}")
            continue

        analyses.append(result)
        aggregator.add(result)
        for warning in result.warnings:
            console.print_warning(f"{result.file}: {warning}")
        console.print_text(format_analysis(result))
        console.print()

    groups = None if no_summary else aggregator.groups()

    if json_output:
        typer.echo(json.dumps(build_json_report(analyses, failures, groups), indent=2))
    elif groups is not None:
        console.print_text(format_statistics(groups))

    if failures:
        console.print_info(
            f"Analyzed {len(analyses)} of {len(apk_paths)} files, {len(failures)} failed"
        )
        raise typer.Exit(1)


@app.command("risks")
def list_risks(
    json_output: bool = typer.Option(
        False,
        "--json",
        "-j",
        help="Output as JSON.",
    ),
) -> None:
    """List the risk types reported by scans."""
    console.set_json_mode(json_output)

    if json_output:
        output = [
            {"type": str(risk_type), "description": risk_type.description}
            for risk_type in RiskType
        ]
        typer.echo(json.dumps(output, indent=2))
        return

    console.print(risk_types_table())
