"""Shared fixtures for nebula updater tests."""

from __future__ import annotations

from pathlib import Path

import pytest

from nebula_updater.config import Settings


def make_settings(work_dir: Path, **overrides: object) -> Settings:
    """Build Settings rooted at *work_dir* with .env loading disabled."""
    defaults: dict[str, object] = {
        "_env_file": None,
        "work_dir": work_dir,
        "metadata_url": "https://tuf.example.test/metadata",
        "targets_url": "https://tuf.example.test/targets",
        "artifact_base_url": "https://artifacts.example.test/repositories/nebula-storage",
        "poll_interval_seconds": 60,
    }
    defaults.update(overrides)
    return Settings(**defaults)  # type: ignore[arg-type]


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    """Settings with all local state under ``tmp_path``."""
    return make_settings(tmp_path)


@pytest.fixture
def settings_factory(tmp_path: Path):
    """Build Settings under ``tmp_path`` with per-test overrides."""

    def _factory(**overrides: object) -> Settings:
        return make_settings(tmp_path, **overrides)

    return _factory
