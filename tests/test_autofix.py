"""Tests for the production TypeScript config auto-fix."""

from __future__ import annotations

import json
from pathlib import Path

import buildmon.autofix as autofix
import buildmon.settings as settings
import buildmon.typescript as typescript

from conftest import START, write_json

FILES = settings.TrackedFiles()
STAMP = int(START.timestamp() * 1000)


def read_build_config(project: Path) -> dict:
    return json.loads((project / "tsconfig.build.json").read_text())


class TestFixTypescriptBuildConfig:
    def test_valid_config_untouched(self, project: Path) -> None:
        before = (project / "tsconfig.build.json").read_text()

        result = autofix.fix_typescript_build_config(project, FILES, now=START)

        assert not result.changed
        assert result.backup is None
        assert (project / "tsconfig.build.json").read_text() == before
        assert list(project.glob("tsconfig.build.json.backup.*")) == []

    def test_creates_missing_config(self, project: Path) -> None:
        (project / "tsconfig.build.json").unlink()

        result = autofix.fix_typescript_build_config(project, FILES, now=START)

        assert result.fixes == ["Created tsconfig.build.json"]
        assert result.backup is None
        assert read_build_config(project) == autofix.default_build_config()

    def test_repairs_and_backs_up(self, project: Path) -> None:
        original = {"compilerOptions": {"strict": True}, "exclude": ["node_modules"], "include": ["src"]}
        write_json(project / "tsconfig.build.json", original)

        result = autofix.fix_typescript_build_config(project, FILES, now=START)

        assert result.fixes == [
            'Added "extends": "./tsconfig.json"',
            "Added test exclusion patterns: " + ", ".join(typescript.REQUIRED_TEST_EXCLUSIONS),
            'Set "noEmit": true',
        ]
        assert result.backup == project / f"tsconfig.build.json.backup.{STAMP}"
        assert json.loads(result.backup.read_text()) == original

        fixed = read_build_config(project)
        assert fixed["extends"] == "./tsconfig.json"
        assert fixed["exclude"] == ["node_modules", *typescript.REQUIRED_TEST_EXCLUSIONS]
        assert fixed["compilerOptions"] == {"strict": True, "noEmit": True}
        assert fixed["include"] == ["src"]

    def test_fixed_config_validates_cleanly(self, project: Path) -> None:
        write_json(project / "tsconfig.build.json", {"exclude": []})

        autofix.fix_typescript_build_config(project, FILES, now=START)
        result = typescript.validate_typescript_configuration(project, FILES)

        assert result.is_valid
        assert result.warnings == []

    def test_replaces_unparsable_config(self, project: Path) -> None:
        (project / "tsconfig.build.json").write_text("{ broken")

        result = autofix.fix_typescript_build_config(project, FILES, now=START)

        assert result.fixes == ["Replaced unparsable tsconfig.build.json"]
        assert result.backup.read_text() == "{ broken"
        assert read_build_config(project) == autofix.default_build_config()

    def test_idempotent(self, project: Path) -> None:
        (project / "tsconfig.build.json").unlink()
        autofix.fix_typescript_build_config(project, FILES, now=START)

        second = autofix.fix_typescript_build_config(project, FILES, now=START)

        assert not second.changed
