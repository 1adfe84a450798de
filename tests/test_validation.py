"""Tests for validation results and the build configuration gate."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

import buildmon.errors as errors
import buildmon.settings as settings
import buildmon.validation as validation

FILES = settings.TrackedFiles()


def rewrite_scripts(project: Path, **scripts: str | None) -> None:
    path = project / "package.json"
    manifest = json.loads(path.read_text())
    for name, value in scripts.items():
        name = name.replace("__", ":").replace("_", "-")
        if value is None:
            manifest["scripts"].pop(name, None)
        else:
            manifest["scripts"][name] = value
    path.write_text(json.dumps(manifest))


class TestValidationResult:
    def test_valid_iff_no_errors(self) -> None:
        result = validation.ValidationResult()
        result.add_warning("careful")

        assert result.is_valid
        assert result.has_warnings

        result.add_error("broken", "fix it")

        assert not result.is_valid
        assert result.suggestions == ["fix it"]

    def test_merge_keeps_order(self) -> None:
        a = validation.ValidationResult(errors=["e1"], warnings=["w1"])
        b = validation.ValidationResult(errors=["e2"], suggestions=["s2"])

        merged = a.merge(b)

        assert merged.errors == ["e1", "e2"]
        assert merged.warnings == ["w1"]
        assert merged.suggestions == ["s2"]
        assert a.errors == ["e1"]

    def test_to_dict(self) -> None:
        data = validation.ValidationResult(warnings=["w"]).to_dict()

        assert data == {"isValid": True, "errors": [], "warnings": ["w"], "suggestions": []}


class TestCheckBuildConfiguration:
    def test_valid_project(self, project: Path) -> None:
        result = validation.check_build_configuration(project, FILES)

        assert result.is_valid
        assert result.warnings == []

    def test_missing_manifest(self, tmp_path: Path) -> None:
        result = validation.check_build_configuration(tmp_path, FILES)

        assert result.errors == ["package.json not found"]
        assert result.warnings == ["next.config.ts not found"]

    def test_missing_script(self, project: Path) -> None:
        rewrite_scripts(project, type_check__build=None)

        result = validation.check_build_configuration(project, FILES)

        assert result.errors == [
            "Missing required script: type-check:build (Production TypeScript checking)"
        ]
        assert 'Add "type-check:build" script to package.json' in result.suggestions

    def test_validate_script_without_type_check(self, project: Path) -> None:
        rewrite_scripts(project, build__validate="next lint")

        result = validation.check_build_configuration(project, FILES)

        assert result.is_valid
        assert result.warnings == [
            "build:validate script may not use production TypeScript configuration"
        ]

    def test_unparsable_manifest(self, project: Path) -> None:
        (project / "package.json").write_text("{")

        result = validation.check_build_configuration(project, FILES)

        assert result.errors[0].startswith("Failed to parse package.json")


class TestValidateBuildConfiguration:
    def test_returns_result_when_usable(self, project: Path) -> None:
        assert validation.validate_build_configuration(project, FILES).is_valid

    def test_raises_on_missing_script(self, project: Path) -> None:
        rewrite_scripts(project, build=None)

        with pytest.raises(errors.BuildConfigurationError) as exc:
            validation.validate_build_configuration(project, FILES)

        assert exc.value.missing == ["Missing required script: build (Main build script)"]
        assert exc.value.suggestions == ['Add "build" script to package.json']
