"""Build validation pipeline.

Runs the validation steps in order and stops at the first failing one:

1. auto-fix of the production TypeScript config (optional)
2. drift pre-check (when monitoring)
3. environment variables for the detected phase
4. TypeScript configuration
5. production type check
6. test file exclusion
7. build configuration (raises BuildConfigurationError)
8. common issues (advisory)

When monitoring is enabled the outcome is recorded as a build attempt,
whether the run passed or failed.
"""

from __future__ import annotations

import logging
import os
import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from pathlib import Path

import buildmon.autofix as autofix_mod
import buildmon.drift as drift_mod
import buildmon.environment as environment
import buildmon.errors as errors
import buildmon.monitor as monitor_mod
import buildmon.settings as settings_mod
import buildmon.typescript as typescript
import buildmon.validation as validation
from buildmon.types import Phase, detect_phase

logger = logging.getLogger(__name__)

ENVIRONMENT = "environment"
TYPESCRIPT_CONFIG = "typescript-config"
TYPE_CHECK = "type-check"
TEST_EXCLUSION = "test-exclusion"
BUILD_CONFIG = "build-config"
COMMON_ISSUES = "common-issues"

TypeChecker = Callable[..., typescript.TypeCheckResult]


@dataclass
class PipelineOptions:
    auto_fix: bool = False
    monitor: bool = False

    @classmethod
    def resolve(
        cls,
        auto_fix: bool = False,
        monitor: bool = False,
        flags: settings_mod.RuntimeFlags | None = None,
    ) -> PipelineOptions:
        """CLI flags OR'ed with AUTO_FIX_DEPLOYMENT / ENABLE_BUILD_MONITORING."""
        flags = flags if flags is not None else settings_mod.RuntimeFlags()
        return cls(
            auto_fix=auto_fix or flags.auto_fix_deployment,
            monitor=monitor or flags.enable_build_monitoring,
        )


@dataclass
class StepOutcome:
    name: str
    result: validation.ValidationResult
    diagnostics: list[typescript.TypeScriptDiagnostic] = field(default_factory=list)

    @property
    def passed(self) -> bool:
        return self.result.is_valid


@dataclass
class ValidationReport:
    """Everything a validation run found."""

    phase: Phase
    steps: list[StepOutcome] = field(default_factory=list)
    drift: drift_mod.DriftReport | None = None
    autofix: autofix_mod.AutoFixResult | None = None
    duration_ms: int = 0
    recorded: bool = False

    @property
    def success(self) -> bool:
        return all(step.passed for step in self.steps)

    @property
    def failed_step(self) -> StepOutcome | None:
        return next((step for step in self.steps if not step.passed), None)

    @property
    def errors(self) -> list[str]:
        return [e for step in self.steps for e in step.result.errors]

    @property
    def warnings(self) -> list[str]:
        return [w for step in self.steps for w in step.result.warnings]

    def raise_for_failure(self) -> None:
        """Raise ValidationFailedError if any step failed."""
        failed = self.failed_step
        if failed is not None:
            raise errors.ValidationFailedError(failed.name, failed.result.errors)


def _type_check_step(
    root: Path,
    files: settings_mod.TrackedFiles,
    timeout: float | None,
    type_checker: TypeChecker,
) -> StepOutcome:
    checked = type_checker(root, files.ts_config_build, timeout)
    result = validation.ValidationResult()
    for message in checked.messages:
        result.add_error(message)
    if not checked.success:
        result.suggest("Check that all imports are correctly typed")
        result.suggest("Ensure no test-specific types are used in production code")
    return StepOutcome(TYPE_CHECK, result, diagnostics=checked.diagnostics)


def run_validation(
    settings: settings_mod.BuildmonSettings,
    options: PipelineOptions | None = None,
    environ: Mapping[str, str] | None = None,
    monitor: monitor_mod.BuildMonitor | None = None,
    type_checker: TypeChecker = typescript.run_production_type_check,
    on_step: Callable[[StepOutcome], None] | None = None,
) -> ValidationReport:
    """Run the validation pipeline.

    Args:
        settings: Project settings.
        options: Auto-fix and monitoring toggles.
        environ: Environment to validate. Defaults to os.environ.
        monitor: Monitor used to check drift and record the outcome when
            monitoring is enabled. Built from ``settings`` if omitted.
        type_checker: Production type check, replaceable for tests.
        on_step: Called after each step completes.

    Returns:
        ValidationReport. Call ``raise_for_failure()`` to turn a failed run
        into ValidationFailedError.

    Raises:
        BuildConfigurationError: If the package manifest or a required
            build script is missing (recorded first when monitoring).
        CommandError: If the type checker cannot be started (also recorded
            first when monitoring).
    """
    options = options or PipelineOptions()
    environ = os.environ if environ is None else environ
    root = settings.root
    files = settings.files
    started = time.monotonic()

    if options.monitor and monitor is None:
        monitor = monitor_mod.BuildMonitor(settings=settings, environ=environ)

    phase = detect_phase(environ)
    report = ValidationReport(phase=phase)

    def finish(step: StepOutcome) -> bool:
        report.steps.append(step)
        logger.info("Step %s %s", step.name, "passed" if step.passed else "failed")
        if on_step is not None:
            on_step(step)
        return step.passed

    def record() -> None:
        report.duration_ms = int((time.monotonic() - started) * 1000)
        if options.monitor and monitor is not None:
            monitor.record_build_attempt(
                monitor_mod.BuildResult(
                    success=report.success,
                    duration=report.duration_ms,
                    phase=phase,
                    errors=report.errors,
                    warnings=report.warnings,
                )
            )
            report.recorded = True

    if options.auto_fix:
        report.autofix = autofix_mod.fix_typescript_build_config(root, files)

    if options.monitor and monitor is not None:
        report.drift = monitor.detect_configuration_drift()
        if report.drift.has_drift:
            logger.warning(
                "Configuration drift detected (%s severity)", report.drift.severity.value
            )

    steps: list[tuple[str, Callable[[], StepOutcome]]] = [
        (
            ENVIRONMENT,
            lambda: StepOutcome(ENVIRONMENT, environment.validate_environment(phase, environ)),
        ),
        (
            TYPESCRIPT_CONFIG,
            lambda: StepOutcome(
                TYPESCRIPT_CONFIG, typescript.validate_typescript_configuration(root, files)
            ),
        ),
        (
            TYPE_CHECK,
            lambda: _type_check_step(
                root, files, settings.thresholds.type_check_timeout, type_checker
            ),
        ),
        (
            TEST_EXCLUSION,
            lambda: StepOutcome(TEST_EXCLUSION, typescript.check_test_file_exclusion(root, files)),
        ),
    ]
    for name, step in steps:
        try:
            outcome = step()
        except errors.BuildmonError as e:
            finish(StepOutcome(name, validation.ValidationResult(errors=[e.cause])))
            record()
            raise
        if not finish(outcome):
            record()
            return report

    try:
        build_config = validation.validate_build_configuration(root, files)
    except errors.BuildConfigurationError as e:
        finish(
            StepOutcome(
                BUILD_CONFIG, validation.ValidationResult(errors=e.missing, suggestions=e.suggestions)
            )
        )
        record()
        raise
    finish(StepOutcome(BUILD_CONFIG, build_config))

    finish(StepOutcome(COMMON_ISSUES, environment.check_common_issues(phase, environ, root)))
    record()
    return report
