"""buildmon CLI: build health monitoring and validation for Next.js projects."""

from __future__ import annotations

import time
from pathlib import Path
from typing import Annotated

import cyclopts
from loguru import logger
from rich.console import Console
from rich.markup import escape

import buildmon.build as build_mod
import buildmon.errors as errors
import buildmon.monitor as monitor_mod
import buildmon.output as output
import buildmon.pipeline as pipeline
import buildmon.settings as settings
from buildmon.types import Phase

# Version is defined here and in pyproject.toml
__version__ = "0.1.0"

console = Console()

app = cyclopts.App(
    name="buildmon",
    help="Build health monitoring, configuration drift detection and build validation.",
    version=__version__,
)

ConfigOption = Annotated[
    Path | None,
    cyclopts.Parameter(name="--config", help="Path to buildmon.yaml"),
]


def _handle_error(e: errors.BuildmonError, target: Console = console) -> None:
    """Display a structured error message."""
    target.print(f"[bold red]Error:[/bold red] {escape(e.context)}\n")
    target.print(f"[yellow]Cause:[/yellow] {escape(e.cause)}\n")
    target.print(f"[green]Fix:[/green] {escape(e.fix)}")


def _get_monitor(config: Path | None) -> monitor_mod.BuildMonitor:
    return monitor_mod.BuildMonitor(settings=settings.load_settings(config))


def _parse_phase(value: str) -> Phase:
    try:
        return Phase(value.lower())
    except ValueError:
        return Phase.UNKNOWN


def _parse_duration(value: str) -> int:
    try:
        return int(value)
    except ValueError:
        return 0


@app.command
def status(config: ConfigOption = None):
    """Show current build health status as JSON."""
    try:
        t0 = time.perf_counter()
        health = _get_monitor(config).get_build_health_status()
        logger.debug(f"Status: {(time.perf_counter() - t0) * 1000:.1f}ms")
        output.render_json(health.to_dict())
    except errors.BuildmonError as e:
        _handle_error(e)
        raise SystemExit(1)


@app.command
def report(config: ConfigOption = None):
    """Generate the full build health report as JSON."""
    try:
        t0 = time.perf_counter()
        health_report = _get_monitor(config).generate_health_report()
        logger.debug(f"Report: {(time.perf_counter() - t0) * 1000:.1f}ms")
        output.render_json(health_report.to_dict())
    except errors.BuildmonError as e:
        _handle_error(e)
        raise SystemExit(1)


@app.command
def drift(
    baseline: Annotated[
        bool,
        cyclopts.Parameter(
            name="--baseline",
            help="Compare against the saved baseline instead of the last successful build",
        ),
    ] = False,
    config: ConfigOption = None,
):
    """Check configuration drift and print it as JSON."""
    try:
        monitor = _get_monitor(config)
        report = monitor.detect_baseline_drift() if baseline else monitor.detect_configuration_drift()
        output.render_json(report.to_dict())
    except errors.BuildmonError as e:
        _handle_error(e)
        raise SystemExit(1)


@app.command
def record(
    success: Annotated[str, cyclopts.Parameter(help="'true' for a successful build")],
    duration: Annotated[str, cyclopts.Parameter(help="Build duration in milliseconds")] = "0",
    phase: Annotated[str, cyclopts.Parameter(help="simple, full or unknown")] = "unknown",
    config: ConfigOption = None,
):
    """Record a build attempt and print the stored record as JSON.

    Examples:
        buildmon record true 42000 simple
        buildmon record false 1200
    """
    try:
        result = monitor_mod.BuildResult(
            success=success.lower() == "true",
            duration=_parse_duration(duration),
            phase=_parse_phase(phase),
        )
        build_record = _get_monitor(config).record_build_attempt(result)
        output.render_json(build_record.to_json_dict())
    except errors.BuildmonError as e:
        _handle_error(e)
        raise SystemExit(1)


@app.command
def alerts(
    days: Annotated[
        float,
        cyclopts.Parameter(name="--days", help="Show alerts raised in the last N days"),
    ] = 7,
    as_json: Annotated[
        bool,
        cyclopts.Parameter(name="--json", help="Print alerts as JSON"),
    ] = False,
    config: ConfigOption = None,
):
    """List recent alerts."""
    try:
        recent = _get_monitor(config).get_recent_alerts(days)
        if as_json:
            output.render_json([a.to_json_dict() for a in recent])
        else:
            output.render_alerts_table(recent)
    except errors.BuildmonError as e:
        _handle_error(e)
        raise SystemExit(1)


@app.command(name="baseline")
def save_baseline(config: ConfigOption = None):
    """Save the current configuration as the drift baseline."""
    try:
        snapshot = _get_monitor(config).save_baseline()
        output.render_json(snapshot.to_json_dict())
    except errors.BuildmonError as e:
        _handle_error(e)
        raise SystemExit(1)


def _render_step(step: pipeline.StepOutcome) -> None:
    label = step.name.replace("-", " ")
    if step.passed:
        output.render_ok(f"{label} passed")
    else:
        console.print(f"  [red]✗[/red] {label} failed")
    output.render_diagnostics(step.diagnostics)
    output.render_validation_result(step.result)


@app.command
def validate(
    auto_fix: Annotated[
        bool,
        cyclopts.Parameter(
            name="--auto-fix",
            help="Repair the production TypeScript config before validating",
        ),
    ] = False,
    monitor: Annotated[
        bool,
        cyclopts.Parameter(
            name="--monitor",
            help="Check drift first and record the outcome as a build attempt",
        ),
    ] = False,
    config: ConfigOption = None,
):
    """Validate the build environment and configuration.

    Checks environment variables for the detected deployment phase, the
    TypeScript configuration, production type checking, test file
    exclusion, package build scripts and common configuration issues.

    AUTO_FIX_DEPLOYMENT=true and ENABLE_BUILD_MONITORING=true have the same
    effect as --auto-fix and --monitor.
    """
    try:
        project_settings = settings.load_settings(config)
        options = pipeline.PipelineOptions.resolve(auto_fix=auto_fix, monitor=monitor)

        t0 = time.perf_counter()
        output.render_step("Validating build...")
        result = pipeline.run_validation(project_settings, options, on_step=_render_step)
        logger.debug(f"Validation: {(time.perf_counter() - t0) * 1000:.1f}ms")

        if result.autofix is not None and result.autofix.changed:
            for fix in result.autofix.fixes:
                output.render_info(f"auto-fix: {fix}")
        if result.drift is not None and result.drift.has_drift:
            console.print(
                f"[yellow]Configuration drift detected ({result.drift.severity.value} severity)[/yellow]"
            )
        if result.recorded:
            output.render_info(f"Build metrics recorded ({round(result.duration_ms / 1000)}s)")

        result.raise_for_failure()
        console.print(f"[bold green]✓ Build validation passed[/bold green] [dim]({result.phase.value} phase)[/dim]")

    except errors.BuildmonError as e:
        _handle_error(e, output.err_console)
        output.render_troubleshooting()
        raise SystemExit(1)


@app.command
def build(config: ConfigOption = None):
    """Run validation and the framework build with monitoring.

    STRICT_BUILD_CHECKS=true turns pre-build (critical health) and
    post-build (missing build output) check failures into build failures.
    """
    try:
        project_settings = settings.load_settings(config)
        output.render_step("Starting monitored build...")

        t0 = time.perf_counter()
        result = build_mod.MonitoredBuild(project_settings).run()
        logger.debug(f"Monitored build: {(time.perf_counter() - t0) * 1000:.1f}ms")

        summary = result.summary()
        console.print()
        console.print("[bold]Build Summary:[/bold]")
        status_text = "[green]SUCCESS[/green]" if result.success else "[red]FAILED[/red]"
        console.print(f"  Status: {status_text}")
        console.print(f"  Duration: {summary['duration']}s")
        console.print(f"  Phase: {summary['phase']}")
        console.print(f"  Errors: {summary['errors']}")
        console.print(f"  Warnings: {summary['warnings']}")
        for i, issue in enumerate(result.errors, start=1):
            console.print(f"  [red]{i}.[/red] {escape(str(issue))}")
        for i, issue in enumerate(result.warnings, start=1):
            console.print(f"  [yellow]{i}.[/yellow] {escape(str(issue))}")
        if result.health is not None:
            console.print(
                f"  Build health: {result.health.status.upper()} "
                f"(success rate {result.health.success_rate * 100:.1f}%, "
                f"{result.health.total_builds} builds)"
            )

        if not result.success:
            raise SystemExit(1)

    except errors.BuildmonError as e:
        _handle_error(e)
        raise SystemExit(1)


def main() -> None:
    app()


if __name__ == "__main__":
    main()
