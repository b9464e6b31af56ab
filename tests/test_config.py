#!/usr/bin/env python3
"""Tests for config loading and engine settings"""

import sys
from pathlib import Path

import pytest

# Add src to path
sys.path.insert(0, str(Path(__file__).resolve().parents[1] / "src"))

from graphmem.core.config import EngineConfig, load_config

REPO_CONFIG = Path(__file__).resolve().parents[1] / "config.yaml"


def test_load_config_missing(tmp_path):
    with pytest.raises(FileNotFoundError) as excinfo:
        load_config(str(tmp_path / "nope.yaml"))
    assert "--config" in str(excinfo.value)


def test_load_config_invalid_yaml(tmp_path):
    path = tmp_path / "bad.yaml"
    path.write_text("cache: [1, 2\n")
    with pytest.raises(ValueError):
        load_config(str(path))


def test_load_config_requires_mapping(tmp_path):
    path = tmp_path / "list.yaml"
    path.write_text("- a\n- b\n")
    with pytest.raises(ValueError):
        load_config(str(path))


def test_load_config_empty(tmp_path):
    path = tmp_path / "empty.yaml"
    path.write_text("")
    assert load_config(str(path)) == {}


def test_defaults():
    settings = EngineConfig.from_config({})
    assert settings == EngineConfig()
    assert settings.cache_ttl_seconds == 300.0
    assert settings.replace_index_entries is True
    assert settings.max_depth == 2
    assert settings.vector_limit == 10
    assert settings.vector_threshold == 0.7


def test_repo_config_matches_defaults():
    assert EngineConfig.from_config(load_config(str(REPO_CONFIG))) == EngineConfig()


def test_from_config_overrides():
    settings = EngineConfig.from_config(
        {
            "cache": {"enabled": False, "ttl_seconds": 60},
            "engine": {"replace_index_entries": False},
            "traversal": {"max_depth": 4},
            "vector_search": {"limit": 3, "threshold": 0.5},
            "logging": {"level": "debug"},
        }
    )
    assert settings.cache_enabled is False
    assert settings.cache_ttl_seconds == 60.0
    assert settings.replace_index_entries is False
    assert settings.max_depth == 4
    assert settings.vector_limit == 3
    assert settings.vector_threshold == 0.5
    assert settings.log_level == "DEBUG"


def test_empty_sections_take_defaults():
    assert EngineConfig.from_config({"cache": None, "traversal": None}) == EngineConfig()


@pytest.mark.parametrize(
    "config",
    [
        {"cache": {"ttl_seconds": -1}},
        {"traversal": {"max_depth": -2}},
        {"vector_search": {"limit": -1}},
        {"vector_search": {"threshold": 1.5}},
    ],
)
def test_out_of_range_values(config):
    with pytest.raises(ValueError):
        EngineConfig.from_config(config)


@pytest.mark.parametrize(
    "config",
    [
        {"cache": {"enabled": "false"}},
        {"cache": {"enabled": 0}},
        {"engine": {"replace_index_entries": "no"}},
    ],
)
def test_flags_must_be_booleans(config):
    with pytest.raises(ValueError) as excinfo:
        EngineConfig.from_config(config)
    assert "true or false" in str(excinfo.value)


def test_quoted_flag_in_yaml_rejected(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text('cache:\n  enabled: "false"\n')
    with pytest.raises(ValueError):
        EngineConfig.from_config(load_config(str(path)))
