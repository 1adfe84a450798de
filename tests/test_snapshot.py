"""Tests for configuration fingerprints."""

from __future__ import annotations

import json
from pathlib import Path

import buildmon.settings as settings
import buildmon.snapshot as snapshot

from conftest import START, write_json


class TestSimpleHash:
    def test_known_values(self) -> None:
        assert snapshot.simple_hash("") == "0"
        assert snapshot.simple_hash("a") == "97"
        assert snapshot.simple_hash("ab") == str(97 * 31 + 98)

    def test_wraps_to_signed_32_bits(self) -> None:
        value = int(snapshot.simple_hash("x" * 100))

        assert -(2**31) <= value < 2**31

    def test_negative_values_occur(self) -> None:
        # 0xFFFF * (31^4 + 31^3 + 31^2 + 31 + 1) overflows into the negative range.
        expected = (0xFFFF * 954305 + 2**31) % 2**32 - 2**31

        assert expected < 0
        assert snapshot.simple_hash("\uffff" * 5) == str(expected)

    def test_counts_utf16_code_units(self) -> None:
        # A character outside the BMP hashes as its surrogate pair.
        high, low = 0xD83D, 0xDE00
        expected = ((high * 31 + low) + 2**31) % 2**32 - 2**31

        assert snapshot.simple_hash("\U0001F600") == str(expected)

    def test_stable(self) -> None:
        assert snapshot.simple_hash('{"a":1}') == snapshot.simple_hash('{"a":1}')


class TestCaptureConfiguration:
    def test_hashes_present_files(self, project: Path) -> None:
        snap = snapshot.capture_configuration(
            project, settings.TrackedFiles(), ["NODE_ENV"], {}, now=START
        )

        assert snap.timestamp == START
        assert snap.package_json_hash is not None
        assert snap.ts_config_hash is not None
        assert snap.ts_config_build_hash is not None
        assert snap.framework_config_hash is not None
        assert snap.dependencies_hash is not None
        assert snap.env_vars_hash is not None

    def test_absent_files_are_none(self, tmp_path: Path) -> None:
        snap = snapshot.capture_configuration(tmp_path, settings.TrackedFiles(), [], {})

        assert snap.package_json_hash is None
        assert snap.ts_config_hash is None
        assert snap.ts_config_build_hash is None
        assert snap.framework_config_hash is None
        assert snap.dependencies_hash is None

    def test_same_inputs_same_hashes(self, project: Path) -> None:
        files = settings.TrackedFiles()
        env = {"NODE_ENV": "production"}

        first = snapshot.capture_configuration(project, files, ["NODE_ENV"], env, now=START)
        second = snapshot.capture_configuration(project, files, ["NODE_ENV"], env, now=START)

        assert first == second

    def test_file_hash_matches_content(self, project: Path) -> None:
        text = (project / "tsconfig.json").read_text()

        snap = snapshot.capture_configuration(project, settings.TrackedFiles(), [], {})

        assert snap.ts_config_hash == snapshot.simple_hash(text)

    def test_custom_framework_config_name(self, project: Path) -> None:
        (project / "next.config.mjs").write_text("export default {};\n")
        files = settings.TrackedFiles(framework_config="next.config.mjs")
        (project / "next.config.ts").unlink()

        snap = snapshot.capture_configuration(project, files, [], {})

        assert snap.framework_config_hash is not None


class TestHashFile:
    def test_keeps_windows_line_endings(self, tmp_path: Path) -> None:
        path = tmp_path / "tsconfig.json"
        path.write_bytes(b"{}\r\n")

        assert snapshot.hash_file(path) == snapshot.simple_hash("{}\r\n")
        assert snapshot.hash_file(path) != snapshot.simple_hash("{}\n")

    def test_invalid_utf8_is_hashed_with_replacement(self, tmp_path: Path) -> None:
        path = tmp_path / "next.config.ts"
        path.write_bytes(b"export default {}\xff\n")

        assert snapshot.hash_file(path) == snapshot.simple_hash("export default {}\ufffd\n")

    def test_absent_file(self, tmp_path: Path) -> None:
        assert snapshot.hash_file(tmp_path / "missing.json") is None


class TestEnvSnapshot:
    def test_unset_and_empty_are_null(self) -> None:
        unset = snapshot.env_snapshot_hash(["A", "B"], {})
        empty = snapshot.env_snapshot_hash(["A", "B"], {"A": ""})

        assert unset == empty
        assert unset == snapshot.simple_hash('{"A":null,"B":null}')

    def test_only_allow_listed_variables(self) -> None:
        base = snapshot.env_snapshot_hash(["A"], {"A": "1"})
        other = snapshot.env_snapshot_hash(["A"], {"A": "1", "SECRET": "x"})

        assert base == other

    def test_value_change_changes_hash(self) -> None:
        assert snapshot.env_snapshot_hash(["A"], {"A": "1"}) != snapshot.env_snapshot_hash(
            ["A"], {"A": "2"}
        )


class TestDependenciesHash:
    def test_ignores_non_dependency_fields(self, tmp_path: Path) -> None:
        manifest = {"name": "a", "dependencies": {"next": "15"}}
        write_json(tmp_path / "package.json", manifest)
        before = snapshot.dependencies_hash(tmp_path / "package.json")

        write_json(tmp_path / "package.json", {**manifest, "name": "b", "version": "2.0.0"})
        after = snapshot.dependencies_hash(tmp_path / "package.json")

        assert before == after

    def test_missing_sections_default_to_empty(self, tmp_path: Path) -> None:
        write_json(tmp_path / "package.json", {"name": "a"})

        value = snapshot.dependencies_hash(tmp_path / "package.json")

        assert value == snapshot.simple_hash(
            json.dumps({"dependencies": {}, "devDependencies": {}}, separators=(",", ":"))
        )

    def test_unparsable_manifest(self, tmp_path: Path) -> None:
        (tmp_path / "package.json").write_text("{not json")

        assert snapshot.dependencies_hash(tmp_path / "package.json") is None
