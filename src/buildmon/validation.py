"""Validation results and build configuration checks.

Every validator returns a ValidationResult. Expected problems (missing or
invalid configuration) are reported in the result; only the build
configuration gate raises, because a project without its build scripts
cannot be validated any further.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any

import buildmon.errors as errors

if TYPE_CHECKING:
    import buildmon.settings as settings


@dataclass
class ValidationResult:
    """Result of a validator."""

    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    suggestions: list[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors

    @property
    def has_warnings(self) -> bool:
        return bool(self.warnings)

    def add_error(self, message: str, suggestion: str | None = None) -> None:
        self.errors.append(message)
        if suggestion:
            self.suggestions.append(suggestion)

    def add_warning(self, message: str, suggestion: str | None = None) -> None:
        self.warnings.append(message)
        if suggestion:
            self.suggestions.append(suggestion)

    def suggest(self, suggestion: str) -> None:
        self.suggestions.append(suggestion)

    def merge(self, other: ValidationResult) -> ValidationResult:
        """Concatenate two results in order."""
        return ValidationResult(
            errors=[*self.errors, *other.errors],
            warnings=[*self.warnings, *other.warnings],
            suggestions=[*self.suggestions, *other.suggestions],
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "isValid": self.is_valid,
            "errors": list(self.errors),
            "warnings": list(self.warnings),
            "suggestions": list(self.suggestions),
        }


REQUIRED_SCRIPTS: dict[str, str] = {
    "build": "Main build script",
    "build:validate": "Build validation script",
    "type-check:build": "Production TypeScript checking",
}


def check_build_configuration(
    project_root: Path,
    files: settings.TrackedFiles,
) -> ValidationResult:
    """Check the package manifest scripts and the framework config.

    Errors:
    - package manifest missing or unparsable
    - any of ``build``, ``build:validate``, ``type-check:build`` missing

    Warnings:
    - ``build:validate`` does not run ``type-check:build``
    - framework config missing
    """
    root = Path(project_root)
    result = ValidationResult()

    manifest_path = root / files.package_json
    if not manifest_path.is_file():
        result.add_error(f"{files.package_json} not found")
    else:
        try:
            manifest = json.loads(manifest_path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            result.add_error(f"Failed to parse {files.package_json}: {e}")
            manifest = None

        if manifest is not None:
            scripts = manifest.get("scripts") if isinstance(manifest, dict) else None
            scripts = scripts if isinstance(scripts, dict) else {}

            for script, description in REQUIRED_SCRIPTS.items():
                if not scripts.get(script):
                    result.add_error(
                        f"Missing required script: {script} ({description})",
                        f'Add "{script}" script to {files.package_json}',
                    )

            validate_script = scripts.get("build:validate")
            if validate_script and "type-check:build" not in str(validate_script):
                result.add_warning(
                    "build:validate script may not use production TypeScript configuration",
                    "Ensure build:validate script runs type-check:build",
                )

    if not (root / files.framework_config).is_file():
        result.add_warning(
            f"{files.framework_config} not found",
            f"Create {files.framework_config} for production optimizations",
        )

    return result


def validate_build_configuration(
    project_root: Path,
    files: settings.TrackedFiles,
) -> ValidationResult:
    """Gate on the build configuration.

    Returns:
        The result (possibly carrying warnings) when the configuration is usable.

    Raises:
        BuildConfigurationError: If the manifest or a required script is missing.
    """
    result = check_build_configuration(project_root, files)
    if not result.is_valid:
        raise errors.BuildConfigurationError(result.errors, result.suggestions)
    return result
