"""Automatic repair of the production TypeScript config.

Creates the production config when it is missing, or repairs an existing
one in place: adds ``extends``, the required test exclusions and
``noEmit: true``, keeping everything else. An existing file is copied to
``<name>.backup.<epoch ms>`` before it is rewritten.
"""

from __future__ import annotations

import json
import logging
import shutil
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING, Any

import buildmon.records as records
from buildmon.typescript import REQUIRED_TEST_EXCLUSIONS

if TYPE_CHECKING:
    import buildmon.settings as settings

logger = logging.getLogger(__name__)


@dataclass
class AutoFixResult:
    fixes: list[str] = field(default_factory=list)
    backup: Path | None = None

    @property
    def changed(self) -> bool:
        return bool(self.fixes)


def default_build_config(base_name: str = "tsconfig.json") -> dict[str, Any]:
    return {
        "extends": f"./{base_name}",
        "compilerOptions": {"noEmit": True},
        "exclude": list(REQUIRED_TEST_EXCLUSIONS),
    }


def _repair(config: dict[str, Any], base_name: str) -> list[str]:
    fixes = []
    if not config.get("extends"):
        config["extends"] = f"./{base_name}"
        fixes.append(f'Added "extends": "./{base_name}"')

    exclude = config.get("exclude")
    if not isinstance(exclude, list):
        exclude = []
    missing = [p for p in REQUIRED_TEST_EXCLUSIONS if p not in exclude]
    if missing:
        config["exclude"] = [*exclude, *missing]
        fixes.append(f"Added test exclusion patterns: {', '.join(missing)}")

    options = config.get("compilerOptions")
    if not isinstance(options, dict):
        options = {}
    if options.get("noEmit") is not True:
        config["compilerOptions"] = {**options, "noEmit": True}
        fixes.append('Set "noEmit": true')
    return fixes


def fix_typescript_build_config(
    project_root: Path,
    files: settings.TrackedFiles,
    now: datetime | None = None,
) -> AutoFixResult:
    """Create or repair the production TypeScript config.

    An unparsable existing file is backed up and replaced with the default
    config.

    Args:
        project_root: Directory holding the configs.
        files: Tracked file names.
        now: Timestamp used for the backup name.

    Returns:
        AutoFixResult listing the applied fixes; empty when nothing changed.
    """
    path = Path(project_root) / files.ts_config_build
    base_name = files.ts_config
    result = AutoFixResult()

    if not path.exists():
        config = default_build_config(base_name)
        result.fixes.append(f"Created {files.ts_config_build}")
    else:
        try:
            loaded = json.loads(path.read_text(encoding="utf-8"))
        except ValueError:
            loaded = None
        if isinstance(loaded, dict):
            config = loaded
            result.fixes.extend(_repair(config, base_name))
        else:
            config = default_build_config(base_name)
            result.fixes.append(f"Replaced unparsable {files.ts_config_build}")

        if not result.fixes:
            return result

        stamp = int((now or records.utc_now()).timestamp() * 1000)
        result.backup = path.with_name(f"{path.name}.backup.{stamp}")
        shutil.copyfile(path, result.backup)
        logger.info("Backed up %s to %s", path, result.backup)

    path.write_text(json.dumps(config, indent=2) + "\n", encoding="utf-8")
    for fix in result.fixes:
        logger.info("Auto-fix: %s", fix)
    return result
