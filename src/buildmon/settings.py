"""Configuration loading and validation for buildmon.

Configuration is loaded from an optional buildmon.yaml and validated using
Pydantic. Runtime toggles (auto-fix, monitoring, strict checks) come from
environment variables via pydantic-settings.
"""

from __future__ import annotations

from functools import cache
from pathlib import Path

import omegaconf as oc
import pydantic as pdt
import pydantic_settings as pdts

import buildmon.errors as errors
import buildmon.stores as stores

DEFAULT_CONFIG = Path("buildmon.yaml")


class Settings(pdts.BaseSettings, strict=True, frozen=True, extra="forbid"):
    """Base settings class with strict validation."""

    pass


class TrackedFiles(Settings):
    """Configuration files fingerprinted for drift detection.

    All paths are relative to the project root.
    """

    package_json: str = "package.json"
    ts_config: str = "tsconfig.json"
    ts_config_build: str = "tsconfig.build.json"
    framework_config: str = "next.config.ts"


class Thresholds(Settings):
    """Limits and heuristic constants."""

    history_limit: int = 100
    alert_retention_days: int = 7
    new_pattern_window_hours: int = 24
    consecutive_window: int = 5
    consecutive_failures: int = 3
    slow_build_ratio: float = 1.5
    type_check_timeout: float = 300.0  # seconds
    build_timeout: float = 1800.0  # seconds


DEFAULT_ENV_VARS = [
    "NODE_ENV",
    "NEXT_PUBLIC_BASE_URL",
    "NEXT_PUBLIC_SITE_NAME",
    "NEXT_PUBLIC_ENABLE_CMS",
    "NEXT_PUBLIC_ENABLE_AUTH",
    "NEXT_PUBLIC_ENABLE_SEARCH",
    "NEXT_PUBLIC_ENABLE_AI",
    "NEXT_PUBLIC_ENABLE_MEDIA",
]


class BuildmonSettings(Settings):
    """Root configuration loaded from buildmon.yaml.

    Example buildmon.yaml:
        project_root: .
        store:
          kind: json
          path: .monitoring
        files:
          framework_config: next.config.mjs
        thresholds:
          history_limit: 50
    """

    project_root: str = "."
    store: stores.StoreKind = pdt.Field(
        default_factory=lambda: stores.JsonStore(path=".monitoring")
    )
    files: TrackedFiles = pdt.Field(default_factory=TrackedFiles)
    env_vars: list[str] = pdt.Field(default_factory=lambda: list(DEFAULT_ENV_VARS))
    thresholds: Thresholds = pdt.Field(default_factory=Thresholds)

    _config_path: Path | None = pdt.PrivateAttr(default=None)

    @pdt.model_validator(mode="after")
    def validate_env_vars_unique(self) -> BuildmonSettings:
        """Ensure the snapshot allow-list has no duplicates."""
        duplicates = sorted({v for v in self.env_vars if self.env_vars.count(v) > 1})
        if duplicates:
            raise ValueError(f"env_vars contains duplicates: {duplicates}")
        return self

    @property
    def root(self) -> Path:
        """Project root, resolved against the config file location."""
        root = Path(self.project_root)
        if not root.is_absolute() and self._config_path is not None:
            root = self._config_path.parent / root
        return root

    def resolve_store(self) -> stores.BaseStore:
        """Return the configured store with a relative path anchored at the project root."""
        if isinstance(self.store, stores.JsonStore) and not Path(self.store.path).is_absolute():
            return stores.JsonStore(path=str(self.root / self.store.path))
        return self.store


class RuntimeFlags(pdts.BaseSettings, frozen=True):
    """Toggles read from the process environment.

    AUTO_FIX_DEPLOYMENT=true      repair the production TS config before validating
    ENABLE_BUILD_MONITORING=true  check drift and record validation runs
    STRICT_BUILD_CHECKS=true      fail monitored builds on pre/post check failures
    """

    model_config = pdts.SettingsConfigDict(case_sensitive=False, extra="ignore")

    auto_fix_deployment: bool = False
    enable_build_monitoring: bool = False
    strict_build_checks: bool = False


def load_settings(
    path: Path | str | None = None,
    project_root: Path | str | None = None,
) -> BuildmonSettings:
    """Load and validate buildmon configuration.

    Args:
        path: Path to buildmon.yaml. If None, ./buildmon.yaml is used when it
            exists and defaults otherwise.
        project_root: Overrides project_root from the file.

    Returns:
        Validated BuildmonSettings instance.

    Raises:
        ConfigNotFoundError: If an explicit config path doesn't exist.
        ConfigValidationError: If config fails validation.
    """
    explicit = path is not None
    path = Path(path) if explicit else DEFAULT_CONFIG

    if not path.exists():
        if explicit:
            raise errors.ConfigNotFoundError(str(path))
        config_dict: dict = {}
        path = None
    else:
        try:
            config = oc.OmegaConf.load(path)
            config_dict = oc.OmegaConf.to_container(config, resolve=True) or {}
        except oc.errors.OmegaConfBaseException as e:
            raise errors.ConfigValidationError(path=str(path), details=str(e)) from e

    if project_root is not None:
        config_dict = {**config_dict, "project_root": str(project_root)}

    try:
        settings = BuildmonSettings.model_validate(config_dict)
    except pdt.ValidationError as e:
        raise errors.ConfigValidationError(
            path=str(path or DEFAULT_CONFIG),
            details=_format_validation_errors(e),
        ) from e

    object.__setattr__(settings, "_config_path", path)
    return settings


def _format_validation_errors(error: pdt.ValidationError) -> str:
    """Format Pydantic validation errors into readable messages."""
    messages = []
    for err in error.errors():
        loc = ".".join(str(x) for x in err["loc"])
        msg = err["msg"]
        messages.append(f"  - {loc}: {msg}")
    return "\n".join(messages)


@cache
def get_settings() -> BuildmonSettings:
    """Get cached settings instance.

    For testing or when you need to load from a specific path,
    use load_settings() directly.
    """
    return load_settings()
