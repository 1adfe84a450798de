"""Tests for structured error handling."""

from __future__ import annotations

import buildmon.errors as errors


class TestBuildmonError:
    """Tests for base error class."""

    def test_error_has_context_cause_fix(self) -> None:
        """Error contains context, cause, and fix."""
        err = errors.BuildmonError(
            context="Loading configuration",
            cause="File not found",
            fix="Create the file",
        )

        assert err.context == "Loading configuration"
        assert err.cause == "File not found"
        assert err.fix == "Create the file"

    def test_error_message_format(self) -> None:
        """Error message combines all parts."""
        err = errors.BuildmonError(
            context="Loading configuration",
            cause="File not found",
            fix="Create the file",
        )

        message = str(err)
        assert "Loading configuration" in message
        assert "Cause: File not found" in message
        assert "Fix: Create the file" in message

    def test_to_dict(self) -> None:
        err = errors.ConfigNotFoundError("buildmon.yaml")

        data = err.to_dict()

        assert data["error"] is True
        assert data["code"] == "ConfigNotFoundError"
        assert data["context"] == err.context


class TestConfigurationErrors:
    """Tests for configuration error classes."""

    def test_config_not_found_error(self) -> None:
        err = errors.ConfigNotFoundError("/path/to/buildmon.yaml")

        assert isinstance(err, errors.ConfigurationError)
        assert "/path/to/buildmon.yaml" in str(err)
        assert "not found" in str(err).lower()

    def test_config_validation_error(self) -> None:
        err = errors.ConfigValidationError(
            path="/path/to/buildmon.yaml",
            details="thresholds.history_limit: Input should be a valid integer",
        )

        assert "/path/to/buildmon.yaml" in str(err)
        assert "history_limit" in str(err)


class TestBuildErrors:
    """Tests for build and validation error classes."""

    def test_build_configuration_error_keeps_missing_and_suggestions(self) -> None:
        err = errors.BuildConfigurationError(
            ["Missing required script: build (Main build script)"],
            ['Add "build" script to package.json'],
        )

        assert err.missing == ["Missing required script: build (Main build script)"]
        assert err.suggestions == ['Add "build" script to package.json']
        assert "Missing required script: build" in err.cause
        assert 'Add "build" script' in err.fix

    def test_build_configuration_error_default_fix(self) -> None:
        err = errors.BuildConfigurationError(["package.json not found"])

        assert err.suggestions == []
        assert "package.json" in err.fix

    def test_validation_failed_lists_messages(self) -> None:
        err = errors.ValidationFailedError("environment", ["a missing", "b missing"])

        assert err.step == "environment"
        assert "environment" in err.context
        assert err.cause == "  - a missing\n  - b missing"

    def test_validation_failed_without_messages(self) -> None:
        err = errors.ValidationFailedError("type-check", [])

        assert err.cause == "(no details)"

    def test_command_and_store_errors(self) -> None:
        cmd = errors.CommandError("npx tsc", "No such file or directory")
        store = errors.StoreError(".monitoring/alerts.json", "Permission denied")

        assert "npx tsc" in str(cmd)
        assert "Permission denied" in str(store)
        assert isinstance(cmd, errors.BuildmonError)
        assert isinstance(store, errors.BuildmonError)
