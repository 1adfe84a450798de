"""Deployment environment checks.

The deployment phase (simple or full) decides which environment variables
are required. Everything here is advisory except missing required
variables, which make the environment invalid.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

from buildmon.types import FEATURE_FLAGS, Phase, enabled_features
from buildmon.validation import ValidationResult


@dataclass(frozen=True)
class PhaseRequirements:
    description: str
    required: tuple[str, ...]
    optional: tuple[str, ...]
    feature_value: str  # expected value of every NEXT_PUBLIC_ENABLE_* flag

    def expected_flags(self) -> dict[str, str]:
        return {var: self.feature_value for var in FEATURE_FLAGS.values()}


PHASE_REQUIREMENTS: dict[Phase, PhaseRequirements] = {
    Phase.SIMPLE: PhaseRequirements(
        description="Simple static deployment without database dependencies",
        required=("NEXT_PUBLIC_BASE_URL", "NEXT_PUBLIC_SITE_NAME"),
        optional=("NEXT_PUBLIC_GA_ID",),
        feature_value="false",
    ),
    Phase.FULL: PhaseRequirements(
        description="Full production deployment with all features",
        required=(
            "NEXT_PUBLIC_BASE_URL",
            "NEXT_PUBLIC_SITE_NAME",
            "DATABASE_URL",
            "DIRECT_URL",
            "NEXTAUTH_SECRET",
            "NEXTAUTH_URL",
        ),
        optional=(
            "NEXT_PUBLIC_GA_ID",
            "GEMINI_API_KEY",
            "AWS_ACCESS_KEY_ID",
            "AWS_SECRET_ACCESS_KEY",
            "AWS_S3_BUCKET",
            "REDIS_URL",
            "ELASTICSEARCH_URL",
        ),
        feature_value="true",
    ),
}

DATABASE_VARS = ("DATABASE_URL", "DIRECT_URL", "NEXTAUTH_SECRET")
PLACEHOLDER_BASE_URL = "your-app.vercel.app"
PLACEHOLDER_GA_ID = "G-XXXXXXXXXX"
REQUIRED_ASSETS = ("favicon.ico", "manifest.json")
OPTIONAL_ASSETS = ("robots.txt", "sitemap.xml")


def validate_environment(phase: Phase, environ: Mapping[str, str]) -> ValidationResult:
    """Check required and optional variables for ``phase``.

    Missing required variables are errors. Missing optional variables and
    feature flags set to the other phase's value are warnings.

    Raises:
        ValueError: If ``phase`` has no requirements (``unknown``).
    """
    try:
        requirements = PHASE_REQUIREMENTS[phase]
    except KeyError:
        raise ValueError(f"Unknown deployment phase: {phase.value}") from None

    result = ValidationResult()
    for var, expected in requirements.expected_flags().items():
        actual = environ.get(var)
        if actual and actual != expected:
            result.add_warning(
                f'Feature flag {var} is set to "{actual}" but expected "{expected}" '
                f"for {phase.value} deployment"
            )

    missing = [v for v in requirements.required if not environ.get(v)]
    for var in missing:
        result.add_error(
            f"Missing required environment variable for {phase.value} deployment: {var}",
            f"Set {var} in the deployment environment",
        )

    unset = [v for v in requirements.optional if not environ.get(v)]
    if unset:
        result.add_warning(f"Optional environment variables not set: {', '.join(unset)}")

    return result


def check_feature_flags(environ: Mapping[str, str]) -> ValidationResult:
    """Warn about feature combinations that cannot work together."""
    flags = enabled_features(environ)
    result = ValidationResult()
    if flags["cms"] and not flags["auth"]:
        result.add_warning("CMS is enabled but authentication is disabled. This may cause issues.")
    if flags["search"] and not environ.get("ELASTICSEARCH_URL") and not environ.get("DATABASE_URL"):
        result.add_warning("Search is enabled but no search backend is configured.")
    return result


def check_required_assets(project_root: Path, public_dir: str = "public") -> ValidationResult:
    """Required public assets missing are warnings; optional ones are only noted."""
    public = Path(project_root) / public_dir
    result = ValidationResult()
    for name in REQUIRED_ASSETS:
        if not (public / name).exists():
            result.add_warning(
                f"{name} missing (required)", f"Add {public_dir}/{name}"
            )
    for name in OPTIONAL_ASSETS:
        if not (public / name).exists():
            result.suggest(f"Consider adding {public_dir}/{name}")
    return result


def check_common_issues(
    phase: Phase,
    environ: Mapping[str, str],
    project_root: Path,
) -> ValidationResult:
    """Advisory checks run after the environment and build config pass.

    Never produces errors.
    """
    result = ValidationResult()

    base_url = environ.get("NEXT_PUBLIC_BASE_URL")
    if base_url:
        if PLACEHOLDER_BASE_URL in base_url:
            result.add_warning(
                "Base URL contains placeholder. This will be updated automatically by Vercel."
            )
        if not base_url.startswith("https://") and environ.get("NODE_ENV") == "production":
            result.add_warning("Base URL should use HTTPS in production.")

    if phase == Phase.SIMPLE:
        set_db_vars = [v for v in DATABASE_VARS if environ.get(v)]
        if set_db_vars:
            result.add_warning(
                "Database-related environment variables are set but features are disabled: "
                + ", ".join(set_db_vars)
            )

    ga_id = environ.get("NEXT_PUBLIC_GA_ID")
    if ga_id and PLACEHOLDER_GA_ID in ga_id:
        result.add_warning(
            "Google Analytics ID contains placeholder. Update with your actual GA4 measurement ID."
        )

    return result.merge(check_feature_flags(environ)).merge(check_required_assets(project_root))


def check_build_output(project_root: Path, output_dir: str = ".next") -> ValidationResult:
    """Check the framework build output after a build."""
    build_dir = Path(project_root) / output_dir
    result = ValidationResult()
    if not build_dir.is_dir():
        result.add_error(f"{output_dir} directory not found", 'Run "npm run build" first')
        return result
    if not (build_dir / "build-manifest.json").exists():
        result.add_warning("Build manifest not found")
    if not (build_dir / "static").is_dir():
        result.add_warning("Static assets directory not found")
    return result
