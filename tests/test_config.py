"""Tests for environment-driven engine configuration."""

from dependency_graph import EngineConfig


def test_defaults():
    config = EngineConfig()

    assert config.critical_slack_epsilon == 0.01
    assert config.deep_chain_threshold == 5
    assert config.many_dependencies_threshold == 10
    assert config.default_tree_depth == 5


def test_from_env_overrides(monkeypatch):
    monkeypatch.setenv("DEPGRAPH_DEEP_CHAIN_THRESHOLD", "2")
    monkeypatch.setenv("DEPGRAPH_CRITICAL_SLACK_EPSILON", "0.5")

    config = EngineConfig.from_env()

    assert config.deep_chain_threshold == 2
    assert config.critical_slack_epsilon == 0.5
    assert config.many_dependencies_threshold == 10


def test_from_env_ignores_invalid_values(monkeypatch):
    monkeypatch.setenv("DEPGRAPH_LEVEL_SPACING", "wide")

    assert EngineConfig.from_env().level_spacing == 150
