"""
Fixtures for CLI tests.
"""

import pytest

from vsco_downloader.core.environment_manager import OVERRIDE_VARS


@pytest.fixture(autouse=True)
def isolated_config(monkeypatch, tmp_path):
    """Point the CLI at a config path that does not exist yet."""
    for name in OVERRIDE_VARS:
        monkeypatch.delenv(name, raising=False)
    config_path = tmp_path / "home" / "config.yaml"
    monkeypatch.setenv("VSCO_CONFIG_PATH", str(config_path))
    return config_path
