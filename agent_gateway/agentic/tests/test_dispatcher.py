from unittest.mock import MagicMock

import pytest
from sqlalchemy.exc import OperationalError

from agent_gateway.agentic.exceptions import ToolHandlerError
from agent_gateway.agentic.execution.dispatcher import ToolDispatcher
from agent_gateway.agentic.execution.outcome import Failure, Success
from agent_gateway.agentic.schemas.error_type import ErrorType
from agent_gateway.agentic.schemas.tool_spec import ToolContext
from conftest import saved_order


@pytest.fixture
def ctx():
    return ToolContext(db=MagicMock(), conversation_ref="conv-1", call_id="c1")


def test_unknown_tool_is_a_failure_not_an_exception(global_registry, ctx):
    outcome = ToolDispatcher(global_registry).execute("delete_everything", None, ctx)

    assert isinstance(outcome, Failure)
    assert outcome.kind == ErrorType.UNKNOWN_TOOL
    assert "delete_everything" in outcome.detail


def test_success_carries_the_handler_value(fake_handler_registry, ctx):
    handler = MagicMock(return_value=saved_order(7))
    registry = fake_handler_registry(save_order_draft=handler)

    outcome = ToolDispatcher(registry).execute("save_order_draft", "payload", ctx)

    assert outcome == Success(handler.return_value)
    handler.assert_called_once_with("payload", ctx)


def test_typed_handler_failure_keeps_kind_and_detail(fake_handler_registry, ctx):
    handler = MagicMock(side_effect=ToolHandlerError("order 9 does not exist.", kind=ErrorType.BUSINESS_RULE_ERROR))
    registry = fake_handler_registry(save_order_draft=handler)

    outcome = ToolDispatcher(registry).execute("save_order_draft", "payload", ctx)

    assert outcome == Failure(kind=ErrorType.BUSINESS_RULE_ERROR, detail="order 9 does not exist.")


def test_unexpected_exception_does_not_leak_internals(fake_handler_registry, ctx):
    handler = MagicMock(side_effect=KeyError("secret_column_name"))
    registry = fake_handler_registry(save_order_draft=handler)

    outcome = ToolDispatcher(registry).execute("save_order_draft", "payload", ctx)

    assert outcome.kind == ErrorType.HANDLER_FAILURE
    assert "secret_column_name" not in outcome.detail
    assert "Traceback" not in outcome.detail


def test_database_error_is_classified(fake_handler_registry, ctx):
    handler = MagicMock(side_effect=OperationalError("INSERT INTO order_requests", {}, Exception("disk I/O error")))
    registry = fake_handler_registry(save_order_draft=handler)

    outcome = ToolDispatcher(registry).execute("save_order_draft", "payload", ctx)

    assert outcome.kind == ErrorType.DATABASE_ERROR
    assert "order_requests" not in outcome.detail
    assert "disk" not in outcome.detail


def test_dispatcher_does_not_retry(fake_handler_registry, ctx):
    handler = MagicMock(side_effect=RuntimeError("boom"))
    registry = fake_handler_registry(save_order_draft=handler)

    ToolDispatcher(registry).execute("save_order_draft", "payload", ctx)

    assert handler.call_count == 1


def test_unknown_tool_failure_needs_no_context(global_registry):
    outcome = ToolDispatcher(global_registry).unknown_tool("delete_everything", "c9")

    assert outcome.kind == ErrorType.UNKNOWN_TOOL
    assert outcome.detail.endswith("Use one of: save_order_draft, summarize_order_requests.")
