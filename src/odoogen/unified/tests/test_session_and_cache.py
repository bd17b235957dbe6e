from __future__ import annotations

import logging

import pytest

from odoogen.unified.envelopes import GenerationRequest
from odoogen.unified.session import CancellationToken, FileArtifact, GenerationSession
from odoogen.unified.spec_cache import SpecCache, cache_key
from odoogen.utils.errors import GenerationCancelled


def _request():
    return GenerationRequest(prompt="helpdesk", version="17.0", module_name="helpdesk_sla")


def test_token_cancel_and_predicate():
    token = CancellationToken()
    assert not token.cancelled
    token.cancel()
    assert token.cancelled

    flag = {"stop": False}
    wrapped = CancellationToken.coerce(lambda: flag["stop"])
    assert not wrapped.cancelled
    flag["stop"] = True
    assert wrapped.cancelled
    flag["stop"] = False
    assert wrapped.cancelled


def test_coerce_rejects_unknown_values():
    with pytest.raises(TypeError):
        CancellationToken.coerce(5)


def test_listener_errors_do_not_propagate(caplog):
    def broken(event):
        raise RuntimeError("ui gone")

    session = GenerationSession(_request(), progress=broken)
    with caplog.at_level(logging.ERROR):
        session.emit("files.count", count=1)
    assert "Progress callback failed" in caplog.text


def test_check_cancelled_carries_snapshot():
    token = CancellationToken()
    session = GenerationSession(_request(), cancellation=token)
    session.put(FileArtifact(path="helpdesk_sla/models/a.py", content="x = 1\n"))
    session.check_cancelled("file:b")
    token.cancel()
    with pytest.raises(GenerationCancelled) as err:
        session.check_cancelled("file:helpdesk_sla/models/b.py")
    assert err.value.files == {"helpdesk_sla/models/a.py": "x = 1\n"}
    assert err.value.stage == "file:helpdesk_sla/models/b.py"


def test_put_replaces_same_path():
    session = GenerationSession(_request())
    session.put(FileArtifact(path="p", content="a"))
    session.put(FileArtifact(path="p", content="b"))
    assert session.snapshot() == {"p": "b"}
    session.remove("p")
    assert not session.has("p")


def test_cache_key():
    assert cache_key("m", "17.0", "a") == cache_key("m", "17.0", "a")
    assert cache_key("m", "17.0", "a") != cache_key("m", "17.0", "b")
    assert cache_key("m", "17.0", "a").startswith("m:17.0:")


def test_spec_cache_expires():
    now = [1000.0]
    cache = SpecCache(ttl_s=300, clock=lambda: now[0])
    cache.put("k", "specs")
    now[0] += 299
    assert cache.get("k") == "specs"
    now[0] += 2
    assert cache.get("k") is None
    assert len(cache) == 0
