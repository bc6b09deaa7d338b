"""Tests for optional Logfire tracing."""

import sys
import types

import pytest

from observability import tracing
from observability.tracing import setup_tracing, trace_operation
from pipeline import Pipeline

from conftest import FakeHNClient, make_item


class FakeSpan:
    def __init__(self, name: str, attributes: dict):
        self.name = name
        self.attributes = dict(attributes)

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def set_attribute(self, key, value):
        self.attributes[key] = value


@pytest.fixture
def fake_logfire(monkeypatch):
    module = types.ModuleType("logfire")
    module.configured = []
    module.instrumented = []
    module.spans = []

    def configure(**kwargs):
        module.configured.append(kwargs)

    def span(name, **attributes):
        module.spans.append(FakeSpan(name, attributes))
        return module.spans[-1]

    module.configure = configure
    module.instrument_pydantic_ai = lambda: module.instrumented.append(True)
    module.span = span
    monkeypatch.setitem(sys.modules, "logfire", module)
    yield module
    setup_tracing(enabled=False)


def test_disabled_tracing_is_a_no_op():
    context = setup_tracing(enabled=False)

    assert not context.enabled
    with trace_operation("analyze_item", {"item_id": 1}) as attrs:
        attrs["outcome"] = "analyzed"
    assert attrs == {"outcome": "analyzed"}


def test_enabled_tracing_configures_logfire(fake_logfire):
    context = setup_tracing(enabled=True, service_name="hn-brief", token="")

    assert context.enabled
    assert fake_logfire.configured == [{"service_name": "hn-brief", "token": None}]
    assert fake_logfire.instrumented == [True]


def test_span_gets_open_and_result_attributes(fake_logfire):
    setup_tracing(enabled=True, token="tok")

    with trace_operation("pipeline_run", {"run_id": "abc"}) as attrs:
        attrs["processed"] = 3

    span = fake_logfire.spans[0]
    assert span.name == "pipeline_run"
    assert span.attributes == {"run_id": "abc", "processed": 3}


def test_configure_failure_disables_tracing(fake_logfire):
    def broken(**kwargs):
        raise RuntimeError("no credentials")

    fake_logfire.configure = broken
    context = setup_tracing(enabled=True)

    assert not context.enabled
    with trace_operation("pipeline_run"):
        pass
    assert fake_logfire.spans == []


def test_missing_logfire_disables_tracing(monkeypatch):
    monkeypatch.setitem(sys.modules, "logfire", None)

    context = setup_tracing(enabled=True)

    assert not context.enabled
    assert not tracing.tracing_enabled()


@pytest.mark.asyncio
async def test_pipeline_run_is_traced(config, tracker, cache, store, analyzer, fake_logfire):
    config.enable_logfire = True
    config.logfire_token = "tok"
    pipeline = Pipeline(
        config,
        tracker=tracker,
        cache=cache,
        store=store,
        client=FakeHNClient(items={1: make_item(1)}),
        analyzer=analyzer,
    )

    await pipeline.run_once()

    assert fake_logfire.configured[0]["token"] == "tok"
    names = [span.name for span in fake_logfire.spans]
    assert names == ["pipeline_run", "analyze_item"]
    run_span, item_span = fake_logfire.spans
    assert run_span.attributes["processed"] == 1
    assert item_span.attributes == {"item_id": 1, "outcome": "analyzed"}
