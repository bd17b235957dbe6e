from __future__ import annotations

import pytest

from odoogen.resources.generation_config import GenerationConfig
from odoogen.types import STAGES
from odoogen.utils.errors import Err, OGError


def test_defaults_cover_every_stage():
    cfg = GenerationConfig()
    for stage in STAGES:
        assert cfg.stage_settings(stage).template_id == "default"
    assert cfg.retry.attempts == 3
    assert cfg.stage_settings("specification").min_lines == 3


def test_from_yaml_layers_partial_stage_overrides(tmp_path):
    path = tmp_path / "odoogen.yaml"
    path.write_text(
        "provider:\n"
        "  model: anthropic/claude-3.5-sonnet\n"
        "stage_config:\n"
        "  file:\n"
        "    temperature: 0.7\n"
        "auto_fix: false\n",
        encoding="utf-8",
    )
    cfg = GenerationConfig.from_yaml(path, env={})
    assert cfg.provider.model == "anthropic/claude-3.5-sonnet"
    assert cfg.stage_settings("file").temperature == 0.7
    assert cfg.stage_settings("file").max_tokens == 8192
    assert cfg.stage_settings("tasks").min_lines == 2
    assert cfg.auto_fix is False


def test_env_overrides_model_and_base_url(tmp_path):
    path = tmp_path / "c.yaml"
    path.write_text("reason_cap: 200\n", encoding="utf-8")
    cfg = GenerationConfig.from_yaml(path, env={"ODOOGEN_MODEL": "m/x", "ODOOGEN_BASE_URL": "http://localhost:8000/v1"})
    assert cfg.provider.model == "m/x"
    assert cfg.provider.base_url == "http://localhost:8000/v1"
    assert cfg.reason_cap == 200


def test_unknown_stage_rejected():
    with pytest.raises(OGError) as err:
        GenerationConfig.from_mapping({"stage_config": {"deploy": {}}}, env={})
    assert err.value.code is Err.INVALID_CONFIG
    assert err.value.ctx["stages"] == ["deploy"]


def test_invalid_values_rejected():
    with pytest.raises(OGError) as err:
        GenerationConfig.from_mapping({"retry": {"attempts": 0}}, env={})
    assert err.value.ctx["reason"] == "config_invalid"


def test_missing_file_and_bad_yaml(tmp_path):
    with pytest.raises(OGError) as missing:
        GenerationConfig.from_yaml(tmp_path / "nope.yaml")
    assert missing.value.ctx["reason"] == "config_not_found"

    bad = tmp_path / "bad.yaml"
    bad.write_text("- just\n- a list\n", encoding="utf-8")
    with pytest.raises(OGError) as not_mapping:
        GenerationConfig.from_yaml(bad)
    assert not_mapping.value.ctx["reason"] == "config_not_mapping"
