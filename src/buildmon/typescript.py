"""TypeScript configuration validation and production type checking.

The production config (``tsconfig.build.json`` by default) must extend the
base config, exclude test files and set ``noEmit``. Checks are rule-based
and pure: they read the two config files and return a ValidationResult.
"""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Sequence
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any

import buildmon.process as process
from buildmon.validation import ValidationResult

if TYPE_CHECKING:
    import buildmon.settings as settings

logger = logging.getLogger(__name__)

REQUIRED_TEST_EXCLUSIONS = [
    "**/*.test.ts",
    "**/*.test.tsx",
    "**/*.spec.ts",
    "**/*.spec.tsx",
    "**/__tests__/**",
    "**/e2e/**",
]

TEST_DIRS = ("__tests__", "e2e")
TEST_MARKERS = (".test.", ".spec.")
SOURCE_SUFFIXES = (".ts", ".tsx")

_DIAGNOSTIC = re.compile(r"^(.+?)\((\d+),(\d+)\):\s+error\s+TS(\d+):\s+(.+)$")


class ConfigParseError(ValueError):
    """A TypeScript config file is not valid JSON."""


def _read_json(path: Path) -> Any:
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        raise ConfigParseError(f"{path.name}: {e}") from e


def _compiler_options(config: Any) -> dict[str, Any]:
    options = config.get("compilerOptions") if isinstance(config, dict) else None
    return options if isinstance(options, dict) else {}


def _exclude_patterns(config: Any) -> list[str]:
    exclude = config.get("exclude") if isinstance(config, dict) else None
    if not isinstance(exclude, list):
        return []
    return [p for p in exclude if isinstance(p, str)]


def validate_typescript_configuration(
    project_root: Path,
    files: settings.TrackedFiles,
) -> ValidationResult:
    """Check the production and base TypeScript configs.

    Invalid when either file is missing or fails to parse. Otherwise the
    result carries warnings for:
    - production config without ``extends``
    - required test exclusions missing from ``exclude`` (exact literal match)
    - ``compilerOptions.noEmit`` present but not true
    - exclude patterns under ``src/`` that don't look test-related
    - base config without ``jsx`` or ``moduleResolution``

    Args:
        project_root: Directory holding the configs.
        files: Tracked file names (``ts_config`` and ``ts_config_build``).

    Returns:
        ValidationResult for the two files.
    """
    root = Path(project_root)
    build_name, base_name = files.ts_config_build, files.ts_config
    result = ValidationResult()

    if not (root / build_name).is_file():
        result.add_error(
            f"{build_name} not found",
            f"Create {build_name} that extends {base_name} and excludes test files",
        )
        return result

    if not (root / base_name).is_file():
        result.add_error(
            f"{base_name} not found",
            f"Create base {base_name} with proper Next.js configuration",
        )
        return result

    try:
        build_config = _read_json(root / build_name)
        base_config = _read_json(root / base_name)
    except ConfigParseError as e:
        result.add_error(
            f"Failed to parse TypeScript configuration: {e}",
            "Check TypeScript configuration files for syntax errors",
        )
        return result

    if not (isinstance(build_config, dict) and build_config.get("extends")):
        result.add_warning(
            f"{build_name} does not extend base configuration",
            f'Add "extends": "./{base_name}" to {build_name}',
        )

    exclude = _exclude_patterns(build_config)
    missing = [p for p in REQUIRED_TEST_EXCLUSIONS if p not in exclude]
    if missing:
        result.add_warning(
            f"Missing test exclusion patterns: {', '.join(missing)}",
            f"Add missing test file patterns to exclude array in {build_name}",
        )

    if _compiler_options(build_config).get("noEmit") is not True:
        result.add_warning(
            "noEmit should be true for build validation",
            f'Set "noEmit": true in {build_name} compilerOptions',
        )

    problematic = [
        p for p in exclude if "src/" in p and "test" not in p and "spec" not in p
    ]
    if problematic:
        result.add_warning(
            f"Potentially problematic exclude patterns: {', '.join(problematic)}",
            "Review exclude patterns to ensure production code is not excluded",
        )

    base_options = _compiler_options(base_config)
    if not base_options.get("jsx"):
        result.add_warning(
            f"JSX configuration missing in base {base_name}",
            f'Add "jsx": "preserve" to base {base_name} compilerOptions',
        )
    if not base_options.get("moduleResolution"):
        result.add_warning(
            f"Module resolution not specified in base {base_name}",
            f'Add "moduleResolution": "bundler" to base {base_name} compilerOptions',
        )

    return result


# =============================================================================
# Type checking
# =============================================================================


@dataclass
class TypeScriptDiagnostic:
    """One compiler error. Unstructured lines use file "Unknown" and line 0."""

    file: str
    line: int
    column: int
    code: str
    message: str

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    def __str__(self) -> str:
        code = f" TS{self.code}" if self.code else ""
        return f"{self.file}:{self.line}:{self.column}{code}: {self.message}"


def parse_typescript_errors(output: str) -> list[TypeScriptDiagnostic]:
    """Parse ``tsc --pretty false`` output.

    Lines of the form ``file(line,col): error TSxxxx: message`` become
    structured diagnostics. When none match, every non-blank line that looks
    like a TypeScript error becomes an unstructured diagnostic.
    """
    lines = output.splitlines()
    diagnostics = []
    for line in lines:
        match = _DIAGNOSTIC.match(line)
        if match:
            file, row, col, code, message = match.groups()
            diagnostics.append(
                TypeScriptDiagnostic(
                    file=file, line=int(row), column=int(col), code=code, message=message
                )
            )
    if diagnostics:
        return diagnostics

    return [
        TypeScriptDiagnostic(file="Unknown", line=0, column=0, code="", message=line.strip())
        for line in lines
        if line.strip() and ("error TS" in line or ".ts(" in line or ".tsx(" in line)
    ]


@dataclass
class TypeCheckResult:
    """Outcome of the production type check."""

    success: bool
    diagnostics: list[TypeScriptDiagnostic] = field(default_factory=list)
    output: str = ""
    timed_out: bool = False

    @property
    def messages(self) -> list[str]:
        if self.timed_out:
            return ["TypeScript type check timed out"]
        if self.diagnostics:
            return [str(d) for d in self.diagnostics]
        if not self.success:
            return [self.output.strip() or "TypeScript type check failed"]
        return []


def type_check_command(build_config: str = "tsconfig.build.json") -> list[str]:
    return ["npx", "tsc", "--project", build_config, "--noEmit", "--pretty", "false"]


def run_production_type_check(
    project_root: Path,
    build_config: str = "tsconfig.build.json",
    timeout: float | None = 300.0,
) -> TypeCheckResult:
    """Type check production code against the production config.

    Raises:
        CommandError: If ``npx`` cannot be started.
    """
    result = process.run(type_check_command(build_config), cwd=project_root, timeout=timeout)
    if result.ok:
        return TypeCheckResult(success=True, output=result.stdout)

    output = result.stdout or result.stderr
    logger.debug("Type check exited with %s", result.returncode)
    return TypeCheckResult(
        success=False,
        diagnostics=parse_typescript_errors(output),
        output=output,
        timed_out=result.timed_out,
    )


# =============================================================================
# Test file exclusion
# =============================================================================


def find_test_files(src_dir: Path) -> list[Path]:
    """Test sources under ``src_dir``.

    Every ``.ts``/``.tsx`` file inside a ``__tests__`` or ``e2e`` directory,
    plus any file whose name contains ``.test.`` or ``.spec.``.
    """
    src_dir = Path(src_dir)
    if not src_dir.is_dir():
        return []

    found = []
    for path in sorted(src_dir.rglob("*")):
        if not path.is_file():
            continue
        rel_parts = path.relative_to(src_dir).parts[:-1]
        in_test_dir = any(part in TEST_DIRS for part in rel_parts)
        if (in_test_dir and path.suffix in SOURCE_SUFFIXES) or any(
            marker in path.name for marker in TEST_MARKERS
        ):
            found.append(path)
    return found


def glob_to_regex(pattern: str) -> re.Pattern[str]:
    """Translate a tsconfig ``exclude`` glob into an anchored regex.

    ``**/`` matches zero or more directories, ``**`` anything, ``*`` and
    ``?`` stay within one path segment.
    """
    pattern = pattern.replace("\\", "/")
    out = []
    i = 0
    while i < len(pattern):
        if pattern.startswith("**/", i):
            out.append("(?:.*/)?")
            i += 3
        elif pattern.startswith("**", i):
            out.append(".*")
            i += 2
        elif pattern[i] == "*":
            out.append("[^/]*")
            i += 1
        elif pattern[i] == "?":
            out.append("[^/]")
            i += 1
        else:
            out.append(re.escape(pattern[i]))
            i += 1
    return re.compile("^" + "".join(out) + "$")


def _looks_like_test(path: str) -> bool:
    return "__tests__" in path or ".test." in path or ".spec." in path


def _is_test_pattern(pattern: str) -> bool:
    return "__tests__" in pattern or "*.test." in pattern or "*.spec." in pattern


def is_excluded(relative_path: str, patterns: Sequence[str]) -> bool:
    """Whether any exclude pattern removes ``relative_path``.

    A generic test-file pattern is taken to cover any test-looking path.
    """
    path = relative_path.replace("\\", "/")
    for pattern in patterns:
        if _looks_like_test(path) and _is_test_pattern(pattern):
            return True
        if glob_to_regex(pattern).match(path):
            return True
    return False


def suggest_patterns(paths: Sequence[str]) -> list[str]:
    suggestions: list[str] = []

    def add(pattern: str) -> None:
        if pattern not in suggestions:
            suggestions.append(pattern)

    for path in paths:
        if "__tests__" in path:
            add("**/__tests__/**")
        if ".test." in path:
            add("**/*.test.*")
        if ".spec." in path:
            add("**/*.spec.*")
        if "integration.test" in path:
            add("**/*.integration.test.*")
        if "/e2e/" in f"/{path}":
            add("**/e2e/**")
    return suggestions


def check_test_file_exclusion(
    project_root: Path,
    files: settings.TrackedFiles,
    src_dir: str = "src",
) -> ValidationResult:
    """Warn about test files that the production config would still compile."""
    root = Path(project_root)
    result = ValidationResult()

    try:
        build_config = _read_json(root / files.ts_config_build)
    except ConfigParseError as e:
        result.add_error(f"Failed to parse TypeScript configuration: {e}")
        return result

    test_files = [
        p.relative_to(root).as_posix() for p in find_test_files(root / src_dir)
    ]
    if not test_files:
        logger.debug("No test files found in %s", root / src_dir)
        return result

    exclude = _exclude_patterns(build_config)
    included = [p for p in test_files if not is_excluded(p, exclude)]
    if not included:
        logger.debug("All %d test files excluded from production build", len(test_files))
        return result

    shown = ", ".join(included[:5])
    more = f" and {len(included) - 5} more" if len(included) > 5 else ""
    result.add_warning(f"Some test files may not be properly excluded: {shown}{more}")
    for pattern in suggest_patterns(included):
        result.suggest(f'Add "{pattern}" to exclude in {files.ts_config_build}')
    return result
