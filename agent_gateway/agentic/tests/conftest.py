import json
from types import SimpleNamespace

import pytest

from agent_gateway.agentic.audit.audit_recorder import AuditRecorder
from agent_gateway.agentic.context.context_promoter import ContextPromoter
from agent_gateway.agentic.orchestration.orchestrator import TurnOrchestrator
from agent_gateway.agentic.orchestration.pipeline import ToolCallPipeline
from agent_gateway.agentic.tools.auto_discover import discover_tools
from agent_gateway.agentic.tools.registry import ToolRegistry
from agent_gateway.config import DEFAULT_PROMOTION_WHITELIST
from agent_gateway.db.init_db import init_db
from agent_gateway.db.session import get_session_factory, reset_engine


SCENARIO_ARGS = {
    "itemNum": "A1",
    "quantity": 3,
    "packSize": None,
    "uom": "EA",
    "status": "draft",
    "confidence": "high",
}


@pytest.fixture
def db_url(tmp_path, monkeypatch):
    #每个测试一个独立的 sqlite 文件库
    url = f"sqlite:///{tmp_path / 'agent_gateway_test.db'}"
    monkeypatch.setenv("DATABASE_URL", url)
    reset_engine()
    init_db()
    yield url
    reset_engine()


@pytest.fixture
def session_factory(db_url):
    return get_session_factory()


@pytest.fixture
def global_registry():
    return discover_tools()


@pytest.fixture
def fake_handler_registry(global_registry):
    '''
    Build a fresh frozen registry holding copies of the real tool specs,
    with handlers replaced by the given callables.
    '''
    def _build(**handlers):
        registry = ToolRegistry()
        for name in global_registry.names():
            spec = global_registry.get(name)
            if name in handlers:
                spec = spec.model_copy(update={"handler": handlers[name]})
            registry.register(spec)
        registry.freeze()
        return registry
    return _build


@pytest.fixture
def make_pipeline(session_factory, global_registry):
    def _make(registry=None, audit_required=False, whitelist=None, recorder=None):
        return ToolCallPipeline(
            registry=registry or global_registry,
            recorder=recorder or AuditRecorder(session_factory),
            promoter=ContextPromoter(
                whitelist if whitelist is not None else DEFAULT_PROMOTION_WHITELIST,
                session_factory,
            ),
            session_factory=session_factory,
            audit_required=audit_required,
        )
    return _make


@pytest.fixture
def make_orchestrator(make_pipeline, session_factory):
    def _make(conversation_ref="conv-1", max_concurrent_tool_calls=4, **pipeline_kwargs):
        pipeline = make_pipeline(**pipeline_kwargs)
        return TurnOrchestrator(
            pipeline=pipeline,
            promoter=pipeline.promoter,
            conversation_ref=conversation_ref,
            max_concurrent_tool_calls=max_concurrent_tool_calls,
            session_factory=session_factory,
        )
    return _make


@pytest.fixture
def scenario_args():
    return dict(SCENARIO_ARGS)


def saved_order(order_id, referenced=None):
    return SimpleNamespace(id=order_id, referenced_order_request_id=referenced)


def as_json(data) -> str:
    return json.dumps(data)
