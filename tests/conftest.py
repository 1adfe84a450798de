"""Shared fixtures: a minimal Next.js project on disk and an in-memory monitor."""

from __future__ import annotations

import json
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

import buildmon.monitor as monitor_mod
import buildmon.settings as settings_mod
import buildmon.stores as stores
import buildmon.typescript as typescript

START = datetime(2024, 1, 15, 12, 0, 0, tzinfo=timezone.utc)

PACKAGE_JSON = {
    "name": "example-site",
    "scripts": {
        "build": "next build",
        "build:validate": "npm run type-check:build && buildmon validate",
        "type-check:build": "tsc --project tsconfig.build.json --noEmit",
    },
    "dependencies": {"next": "15.0.0", "react": "19.0.0"},
    "devDependencies": {"typescript": "5.6.0"},
}

TSCONFIG = {
    "compilerOptions": {
        "strict": True,
        "jsx": "preserve",
        "moduleResolution": "bundler",
    },
    "include": ["**/*.ts", "**/*.tsx"],
}

TSCONFIG_BUILD = {
    "extends": "./tsconfig.json",
    "compilerOptions": {"noEmit": True},
    "exclude": list(typescript.REQUIRED_TEST_EXCLUSIONS),
}

SIMPLE_ENV = {
    "NEXT_PUBLIC_BASE_URL": "https://example.com",
    "NEXT_PUBLIC_SITE_NAME": "Example",
    "NEXT_PUBLIC_GA_ID": "G-ABC123",
}


def write_json(path: Path, data: object) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, indent=2), encoding="utf-8")


class FakeClock:
    """Deterministic clock that only moves when told to."""

    def __init__(self, start: datetime = START) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


@pytest.fixture
def project(tmp_path: Path) -> Path:
    """A valid project with every tracked file and the public assets."""
    write_json(tmp_path / "package.json", PACKAGE_JSON)
    write_json(tmp_path / "tsconfig.json", TSCONFIG)
    write_json(tmp_path / "tsconfig.build.json", TSCONFIG_BUILD)
    (tmp_path / "next.config.ts").write_text("export default {};\n")
    public = tmp_path / "public"
    public.mkdir()
    for name in ("favicon.ico", "manifest.json", "robots.txt", "sitemap.xml"):
        (public / name).write_text("")
    return tmp_path


@pytest.fixture
def settings(project: Path) -> settings_mod.BuildmonSettings:
    return settings_mod.load_settings(project_root=project)


@pytest.fixture
def environ() -> dict[str, str]:
    return dict(SIMPLE_ENV)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def raised() -> list:
    """Alerts passed to the monitor's alert handler."""
    return []


@pytest.fixture
def monitor(settings, environ, clock, raised) -> monitor_mod.BuildMonitor:
    return monitor_mod.BuildMonitor(
        settings=settings,
        store=stores.MemoryStore(),
        environ=environ,
        clock=clock,
        on_alert=raised.append,
    )
