from __future__ import annotations

from odoogen.unified.envelopes import GenerationRequest
from odoogen.unified.orchestrator import generate_module
from tests.helpers.llm_stubs import ScriptedOdooLLM


def test_targeted_mode_generates_only_requested_files(fast_config, recorded_events):
    request = GenerationRequest(
        prompt="add SLA policies to the helpdesk module",
        version="17.0",
        module_name="helpdesk_sla",
        target_files=["models/sla_policy.py", "views/sla_policy.xml"],
    )
    llm = ScriptedOdooLLM()
    result = generate_module(request, llm, progress=recorded_events, config=fast_config)

    assert llm.stages() == ["validation", "specification", "file", "file"]
    assert "helpdesk_sla/models/sla_policy.py" in result.files
    assert "helpdesk_sla/views/sla_policy_views.xml" in result.files
    assert "helpdesk_sla/__manifest__.py" not in result.files
    assert result.menu is None
    kinds = [e.kind for e in recorded_events.events]
    assert "tasks.ready" not in kinds and "menu.ready" not in kinds


def test_targeted_mode_skips_unplaceable_paths(fast_config, recorded_events):
    request = GenerationRequest(
        prompt="helpdesk module docs",
        version="17.0",
        module_name="helpdesk_sla",
        target_files=("README.md",),
        skip_validation=True,
    )
    result = generate_module(request, ScriptedOdooLLM(), progress=recorded_events, config=fast_config)
    assert result.files == {}
    skipped = [e.payload for e in recorded_events.events if e.kind == "file.skipped"]
    assert skipped == [{"path": "README.md", "reason": "invalid_path"}]
