"""Tests for YAML config loading and run options."""

import pytest

from trendpress.config import (
    EmbeddingConfig,
    WorkflowConfig,
    WorkflowOptions,
    get_api_key,
    load_config,
)


def test_load_config_defaults_without_path():
    cfg = load_config(None)
    assert cfg.workflow.clustering_threshold == 0.75
    assert cfg.workflow.hours == 24
    assert cfg.workflow.max_items == 100
    assert cfg.trends.min_cluster_size == 2
    assert cfg.storage.backend == "file"
    assert cfg.sources == []


def test_load_config_merges_sections_and_ignores_unknown_keys(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(
        "workflow:\n"
        "  hours: 6\n"
        "  not_a_setting: 1\n"
        "generation:\n"
        "  name: openai\n"
        "  max_topics: 3\n"
        "unknown_section:\n"
        "  value: true\n"
        "sources:\n"
        "  - id: wire\n"
        "    fetch_target: https://wire.example.com/rss\n",
        encoding="utf-8",
    )

    cfg = load_config(str(path))

    assert cfg.workflow.hours == 6
    assert cfg.workflow.max_items == 100
    assert cfg.generation.name == "openai"
    assert cfg.generation.max_topics == 3
    assert cfg.sources == [{"id": "wire", "fetch_target": "https://wire.example.com/rss"}]


def test_load_config_returns_fresh_instances():
    first = load_config(None)
    first.workflow.hours = 1
    assert load_config(None).workflow.hours == 24


def test_workflow_options_from_config():
    options = WorkflowOptions.from_config(WorkflowConfig(clustering_threshold=0.6, hours=12, max_items=40))
    assert options == WorkflowOptions(clustering_threshold=0.6, hours=12, max_items=40)


@pytest.mark.parametrize(
    "kwargs",
    [
        {"clustering_threshold": 0.0},
        {"clustering_threshold": 1.5},
        {"hours": 0},
        {"max_items": -1},
    ],
)
def test_workflow_options_rejects_invalid_values(kwargs):
    with pytest.raises(ValueError):
        WorkflowOptions(**kwargs)


def test_workflow_options_are_frozen():
    options = WorkflowOptions()
    with pytest.raises(AttributeError):
        options.hours = 2


def test_get_api_key_prefers_inline_value(monkeypatch):
    monkeypatch.setenv("HUGGINGFACE_API_KEY", "from-env")
    assert get_api_key(EmbeddingConfig(api_key="inline")) == "inline"
    assert get_api_key(EmbeddingConfig()) == "from-env"


def test_get_api_key_missing(monkeypatch):
    monkeypatch.delenv("HUGGINGFACE_API_KEY", raising=False)
    assert get_api_key(EmbeddingConfig()) is None
