"""Configuration snapshot reader.

Reads the tracked configuration files and the environment allow-list and
reduces each to a cheap 32-bit fingerprint. The hashes only detect change;
they are not integrity checks.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping, Sequence
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING

import buildmon.records as records

if TYPE_CHECKING:
    import buildmon.settings as settings

logger = logging.getLogger(__name__)

_INT32 = 1 << 32


def simple_hash(text: str) -> str:
    """Rolling ``h * 31 + c`` hash over UTF-16 code units, wrapped to signed 32 bits.

    Matches the fingerprints already stored by the project's Node scripts, so
    existing histories keep comparing equal.
    """
    data = text.encode("utf-16-le")
    h = 0
    for i in range(0, len(data), 2):
        code_unit = data[i] | (data[i + 1] << 8)
        h = ((h << 5) - h + code_unit) & 0xFFFFFFFF
    if h >= 1 << 31:
        h -= _INT32
    return str(h)


def hash_file(path: Path) -> str | None:
    """Hash a file's text, or None if it is absent or cannot be read.

    Bytes are decoded as-is: line endings are kept and invalid UTF-8 becomes
    U+FFFD, so the hash matches what the Node scripts stored.
    """
    if not path.is_file():
        return None
    try:
        return simple_hash(path.read_bytes().decode("utf-8", errors="replace"))
    except OSError as e:
        # Indistinguishable from "absent" in the snapshot.
        logger.warning("Could not read %s for snapshot: %s", path, e)
        return None


def env_snapshot_hash(names: Sequence[str], environ: Mapping[str, str]) -> str:
    """Hash the allow-listed variables in a fixed order (unset/empty -> null)."""
    snapshot = {name: environ.get(name) or None for name in names}
    return simple_hash(json.dumps(snapshot, separators=(",", ":"), ensure_ascii=False))


def dependencies_hash(package_json: Path) -> str | None:
    """Hash only the dependency sections of the package manifest."""
    if not package_json.is_file():
        return None
    try:
        manifest = json.loads(package_json.read_text(encoding="utf-8"))
    except (OSError, ValueError):
        return None
    if not isinstance(manifest, dict):
        return None
    deps = {
        "dependencies": manifest.get("dependencies") or {},
        "devDependencies": manifest.get("devDependencies") or {},
    }
    return simple_hash(json.dumps(deps, separators=(",", ":"), ensure_ascii=False))


def capture_configuration(
    project_root: Path,
    files: settings.TrackedFiles,
    env_vars: Sequence[str],
    environ: Mapping[str, str],
    now: datetime | None = None,
) -> records.ConfigSnapshot:
    """Take a fingerprint of the current configuration.

    Args:
        project_root: Directory containing the tracked files.
        files: Names of the tracked configuration files.
        env_vars: Environment variable allow-list.
        environ: Environment to read the allow-list from.
        now: Override the snapshot timestamp for testing.

    Returns:
        ConfigSnapshot with one hash per tracked artifact.
    """
    root = Path(project_root)
    return records.ConfigSnapshot(
        timestamp=now or records.utc_now(),
        package_json_hash=hash_file(root / files.package_json),
        ts_config_hash=hash_file(root / files.ts_config),
        ts_config_build_hash=hash_file(root / files.ts_config_build),
        framework_config_hash=hash_file(root / files.framework_config),
        env_vars_hash=env_snapshot_hash(env_vars, environ),
        dependencies_hash=dependencies_hash(root / files.package_json),
    )
