import logging

import pytest

from services.observability import tracing
from services.observability.metrics import timing_metric


def test_timing_metric_warns_when_slow(caplog):
    with caplog.at_level(logging.DEBUG, logger="services.observability.metrics"):
        with timing_metric("fast.op", slow_after_s=60):
            pass
        with timing_metric("slow.op", slow_after_s=-1):
            pass

    levels = {r.getMessage().split()[0]: r.levelno for r in caplog.records}
    assert levels == {"fast.op": logging.DEBUG, "slow.op": logging.WARNING}


def test_timing_metric_logs_even_when_block_raises(caplog):
    with caplog.at_level(logging.DEBUG, logger="services.observability.metrics"):
        with pytest.raises(ValueError):
            with timing_metric("broken.op"):
                raise ValueError("boom")
    assert "broken.op took" in caplog.text


def test_trace_chat_is_a_no_op_without_keys(monkeypatch):
    monkeypatch.setattr(tracing, "_langfuse", None)
    assert tracing._client() is None
    tracing.trace_chat("chat", {"model": "m", "messages": []}, "reply", user_id="u1")


class BrokenLangfuse:
    def trace(self, **kwargs):
        raise RuntimeError("langfuse down")


def test_trace_chat_failures_are_logged_not_raised(monkeypatch, caplog):
    monkeypatch.setattr(tracing, "_langfuse", BrokenLangfuse())
    with caplog.at_level(logging.WARNING, logger="services.observability.tracing"):
        tracing.trace_chat("insights", {"model": "m"}, "text")
    assert "assistant.insights" in caplog.text
