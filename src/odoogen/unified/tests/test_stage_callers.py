from __future__ import annotations

import pytest

from odoogen.resources.generation_config import RetrySettings
from odoogen.unified.stage_core import complete_with_retry, render_template, retrying
from odoogen.unified.stage_raw import call_stage, summarize_artifact
from odoogen.utils.errors import Err, OGError, ProviderError
from tests.helpers.llm_stubs import FlakyLLM, ScriptedOdooLLM

NO_WAIT = RetrySettings(attempts=3, base_delay_s=0, max_delay_s=0)


def test_transient_failures_are_retried():
    llm = FlakyLLM([ProviderError(message="busy", status_code=429), ProviderError(message="down", status_code=503)], "ok")
    assert complete_with_retry(llm, "p", retry=NO_WAIT) == "ok"
    assert llm.calls == 3


def test_retries_are_bounded():
    llm = FlakyLLM([ProviderError(message="late", kind="timeout")] * 4, "never")
    with pytest.raises(ProviderError):
        complete_with_retry(llm, "p", retry=NO_WAIT)
    assert llm.calls == 3


def test_fatal_failures_are_not_retried():
    llm = FlakyLLM([ProviderError(message="bad key", status_code=401)], "never")
    with pytest.raises(ProviderError) as err:
        complete_with_retry(llm, "p", retry=NO_WAIT)
    assert err.value.code is Err.PROVIDER_FATAL
    assert llm.calls == 1


def test_line_endings_normalized():
    assert complete_with_retry(FlakyLLM([], "a\r\nb"), "p", retry=NO_WAIT) == "a\nb"


def test_call_stage_passes_stage_policy(fast_config):
    llm = ScriptedOdooLLM()
    artifact = call_stage(llm, "validation", {"prompt": "helpdesk module"}, config=fast_config)
    assert artifact.stage == "validation"
    call = llm.calls[0]
    assert call["response_format_hint"] == "json"
    assert call["temperature"] == 0.0
    assert "helpdesk module" in call["prompt"]


def test_min_lines_enforced(fast_config):
    llm = ScriptedOdooLLM(answers={"specification": "just one line"})
    with pytest.raises(OGError) as err:
        call_stage(
            llm,
            "specification",
            {"prompt": "p", "version": "17.0", "module_name": "m", "validation_reason": ""},
            config=fast_config,
        )
    assert err.value.code is Err.PARSER_FAILURE
    assert err.value.ctx["reason"] == "insufficient_lines"


def test_missing_prompt_values(fast_config):
    with pytest.raises(OGError) as err:
        call_stage(ScriptedOdooLLM(), "tasks", {"version": "17.0"}, config=fast_config)
    assert err.value.code is Err.INVALID_REQUEST
    assert "specifications" in err.value.ctx["missing"]


def test_missing_template(tmp_path):
    with pytest.raises(OGError) as err:
        render_template("menu", "nope", {}, templates_root=tmp_path)
    assert err.value.code is Err.MISSING_TEMPLATE


def test_undefined_template_variable_fails(tmp_path):
    (tmp_path / "summary").mkdir()
    (tmp_path / "summary" / "default.txt").write_text("{{ kind }} {{ not_given }}", encoding="utf-8")
    with pytest.raises(OGError) as err:
        render_template("summary", "default", {"kind": "x"}, templates_root=tmp_path)
    assert err.value.ctx["reason"] == "render_failed"


def test_every_stage_has_a_default_template():
    from odoogen.types import STAGES
    from odoogen.unified.stage_core import TEMPLATES_ROOT

    for stage in STAGES:
        assert (TEMPLATES_ROOT / stage / "default.txt").is_file(), stage


def test_summarize_artifact_short_text_skips_llm(fast_config):
    llm = ScriptedOdooLLM()
    assert summarize_artifact(llm, "tasks", "short", config=fast_config) == "short"
    assert llm.calls == []


def test_summarize_artifact_falls_back_to_truncation(fast_config):
    llm = ScriptedOdooLLM(answers={"summary": ProviderError(message="no", status_code=400)})
    text = "\n".join(f"line {i}" for i in range(300))
    out = summarize_artifact(llm, "tasks", text, config=fast_config, limit=100)
    assert out.startswith("line 0")
    assert out.endswith("(truncated)")


def test_summarize_artifact_uses_summary_stage(fast_config):
    llm = ScriptedOdooLLM()
    out = summarize_artifact(llm, "specifications", "x " * 400, config=fast_config)
    assert out == "- helpdesk.ticket with SLA deadline"
    assert llm.stages() == ["summary"]


def test_default_backoff_is_one_then_two_seconds():
    sleeps = []
    policy = retrying(RetrySettings()).copy(sleep=sleeps.append)
    llm = FlakyLLM([ProviderError(message="down", status_code=503)] * 3, "never")
    with pytest.raises(ProviderError):
        policy(llm.complete, "p")
    assert llm.calls == 3
    assert sleeps == [1.0, 2.0]


def test_backoff_is_capped():
    sleeps = []
    settings = RetrySettings(attempts=5, base_delay_s=1.0, max_delay_s=4.0)
    policy = retrying(settings).copy(sleep=sleeps.append)
    llm = FlakyLLM([ProviderError(message="busy", status_code=429)] * 4, "ok")
    assert policy(llm.complete, "p") == "ok"
    assert sleeps == [1.0, 2.0, 4.0, 4.0]
