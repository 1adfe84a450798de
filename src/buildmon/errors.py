"""Errors raised by buildmon.

Each error carries three parts so the CLI can print actionable output:
- context: the operation that was running
- cause: what went wrong
- fix: what the user can do about it

Validators return results for expected conditions (missing or invalid
configuration). These errors are reserved for the unexpected, and the CLI
converts them into exit code 1 with remediation text.
"""

from __future__ import annotations


class BuildmonError(Exception):
    """Root of the buildmon error hierarchy."""

    def __init__(self, context: str, cause: str, fix: str) -> None:
        self.context = context
        self.cause = cause
        self.fix = fix
        super().__init__(f"{context}\n\nCause: {cause}\n\nFix: {fix}")

    def to_dict(self) -> dict:
        """Error as a JSON-ready mapping."""
        return {
            "error": True,
            "code": type(self).__name__,
            "context": self.context,
            "cause": self.cause,
            "fix": self.fix,
        }


class ConfigurationError(BuildmonError):
    """Problems with buildmon.yaml or the settings derived from it."""


class ConfigNotFoundError(ConfigurationError):
    """An explicitly requested config file does not exist."""

    def __init__(self, path: str) -> None:
        super().__init__(
            context=f"Reading buildmon configuration '{path}'",
            cause="Configuration file not found",
            fix=f"Create a buildmon.yaml file at '{path}' or omit --config to use the defaults",
        )


class ConfigValidationError(ConfigurationError):
    """buildmon.yaml does not match the settings schema."""

    def __init__(self, path: str, details: str) -> None:
        super().__init__(
            context=f"Checking buildmon configuration '{path}'",
            cause=details,
            fix="Valid top-level keys are project_root, store, files, env_vars and thresholds",
        )


class StoreError(BuildmonError):
    """Monitoring state could not be persisted."""

    def __init__(self, target: str, details: str) -> None:
        super().__init__(
            context=f"Writing monitoring state to '{target}'",
            cause=details,
            fix="Check that the monitoring directory exists and is writable",
        )


class BuildConfigurationError(BuildmonError):
    """Package manifest is missing or lacks required build scripts."""

    def __init__(self, missing: list[str], suggestions: list[str] | None = None) -> None:
        self.missing = missing
        self.suggestions = suggestions or []
        fix = "; ".join(self.suggestions) if self.suggestions else "Add the missing entries to package.json"
        super().__init__(
            context="Validating build configuration",
            cause="\n".join(missing),
            fix=fix,
        )


class ValidationFailedError(BuildmonError):
    """The build validation pipeline did not pass."""

    def __init__(self, step: str, messages: list[str]) -> None:
        self.step = step
        self.messages = messages
        cause = "\n".join(f"  - {m}" for m in messages) if messages else "(no details)"
        super().__init__(
            context=f"Running build validation ({step})",
            cause=cause,
            fix="Run 'buildmon validate --auto-fix' or address the listed issues and retry",
        )


class CommandError(BuildmonError):
    """An external command could not be started."""

    def __init__(self, command: str, details: str) -> None:
        super().__init__(
            context=f"Running '{command}'",
            cause=details,
            fix="Make sure the command is installed and on PATH (e.g. npm install typescript)",
        )
