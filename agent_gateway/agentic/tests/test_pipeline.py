import pytest

from agent_gateway.agentic.audit.audit_recorder import AuditRecorder
from agent_gateway.agentic.context.context_promoter import HoldingBuffer
from agent_gateway.agentic.exceptions import AuditWriteError
from agent_gateway.agentic.orchestration.trace import TraceRecorder
from agent_gateway.agentic.schemas.tool_call import ToolCallEnvelope
from agent_gateway.agentic.schemas.tool_result import ResultStatus
from conftest import as_json, saved_order


class RecordingHandler:
    def __init__(self, value=None, error=None):
        self.value = value
        self.error = error
        self.payloads = []

    def __call__(self, payload, ctx):
        self.payloads.append(payload)
        if self.error is not None:
            raise self.error
        return self.value

    @property
    def call_count(self):
        return len(self.payloads)


class FailingStartRecorder(AuditRecorder):
    def record_start(self, *args, **kwargs):
        raise AuditWriteError("storage unavailable")


class FailingFinishRecorder(AuditRecorder):
    def record_finish(self, handle, result):
        raise AuditWriteError("storage unavailable")


def _envelope(raw_arguments, tool_name="save_order_draft", call_id="c1"):
    return ToolCallEnvelope(call_id=call_id, tool_name=tool_name, raw_arguments=raw_arguments)


def test_valid_call_returns_minimal_result_and_audits_it(make_pipeline, fake_handler_registry, scenario_args):
    handler = RecordingHandler(value=saved_order(7))
    pipeline = make_pipeline(registry=fake_handler_registry(save_order_draft=handler))

    result = pipeline.run(_envelope(as_json(scenario_args)), "conv-1")

    wire = {
        "status": "success",
        "result": {
            "message": "Order draft saved.",
            "savedOrderRequestId": 7,
            "referencedOrderRequestId": None,
        },
    }
    assert result.to_wire() == wire
    [payload] = handler.payloads
    assert payload.pack_size == ""
    assert payload.item_num == "A1"
    [step] = pipeline.recorder.list_run_steps("conv-1")
    assert step.input == scenario_args
    assert step.output == wire


def test_missing_field_never_reaches_the_handler(make_pipeline, fake_handler_registry, scenario_args):
    handler = RecordingHandler(value=saved_order(7))
    pipeline = make_pipeline(registry=fake_handler_registry(save_order_draft=handler))
    del scenario_args["quantity"]

    result = pipeline.run(_envelope(as_json(scenario_args)), "conv-1")

    assert handler.call_count == 0
    assert result.to_wire() == {
        "status": "error",
        "result": {
            "message": "Invalid parameters for save order draft: missing required field(s): quantity.",
            "savedOrderRequestId": None,
            "referencedOrderRequestId": None,
        },
    }
    [step] = pipeline.recorder.list_run_steps("conv-1")
    assert step.outcome == "error"
    assert step.output == result.to_wire()


def test_unparseable_arguments_are_audited_raw(make_pipeline):
    pipeline = make_pipeline()

    result = pipeline.run(_envelope("{quantity: 3"), "conv-1")

    assert result.status == ResultStatus.error
    assert "not valid JSON" in result.result.message
    [step] = pipeline.recorder.list_run_steps("conv-1")
    assert step.input == {"raw": "{quantity: 3"}


def test_unknown_tool_is_reported_and_audited(make_pipeline):
    pipeline = make_pipeline()

    result = pipeline.run(_envelope("{}", tool_name="delete_everything"), "conv-1")

    assert result.to_wire() == {
        "status": "error",
        "result": {
            "message": "Tool 'delete_everything' does not exist. "
                       "Use one of: save_order_draft, summarize_order_requests.",
        },
    }
    [step] = pipeline.recorder.list_run_steps("conv-1")
    assert step.tool_name == "delete_everything"
    assert step.output == result.to_wire()


def test_handler_crash_is_sanitized(make_pipeline, fake_handler_registry, scenario_args):
    handler = RecordingHandler(error=RuntimeError("secret stack detail"))
    pipeline = make_pipeline(registry=fake_handler_registry(save_order_draft=handler))

    result = pipeline.run(_envelope(as_json(scenario_args)), "conv-1")

    assert result.status == ResultStatus.error
    assert "secret stack detail" not in result.to_json()
    assert result.result.message.startswith("Save order draft failed:")


def test_audit_holds_everything_the_model_saw(make_pipeline, fake_handler_registry, scenario_args):
    pipeline = make_pipeline(registry=fake_handler_registry(save_order_draft=RecordingHandler(value=saved_order(5, 2))))

    result = pipeline.run(_envelope(as_json(scenario_args)), "conv-1")

    [step] = pipeline.recorder.list_run_steps("conv-1")
    model_view = result.to_wire()["result"]
    assert {k: step.output["result"][k] for k in model_view} == model_view


def test_audit_failure_is_not_surfaced_to_the_model(make_pipeline, fake_handler_registry, scenario_args, session_factory):
    handler = RecordingHandler(value=saved_order(7))
    pipeline = make_pipeline(
        registry=fake_handler_registry(save_order_draft=handler),
        recorder=FailingStartRecorder(session_factory),
    )

    result = pipeline.run(_envelope(as_json(scenario_args)), "conv-1")

    assert result.ok
    assert handler.call_count == 1
    assert "audit" not in result.to_json().lower()


def test_required_audit_blocks_dispatch_when_start_fails(make_pipeline, fake_handler_registry, scenario_args, session_factory):
    handler = RecordingHandler(value=saved_order(7))
    pipeline = make_pipeline(
        registry=fake_handler_registry(save_order_draft=handler),
        recorder=FailingStartRecorder(session_factory),
        audit_required=True,
    )

    with pytest.raises(AuditWriteError):
        pipeline.run(_envelope(as_json(scenario_args)), "conv-1")
    assert handler.call_count == 0


def test_required_audit_fails_request_when_finish_fails(make_pipeline, fake_handler_registry, scenario_args, session_factory):
    handler = RecordingHandler(value=saved_order(7))
    recorder = FailingFinishRecorder(session_factory)
    pipeline = make_pipeline(
        registry=fake_handler_registry(save_order_draft=handler),
        recorder=recorder,
        audit_required=True,
    )

    with pytest.raises(AuditWriteError):
        pipeline.run(_envelope(as_json(scenario_args)), "conv-1")
    assert handler.call_count == 1
    # 输入已落库，输出缺失 -> unknown outcome
    [step] = recorder.list_unknown_outcomes("conv-1")
    assert step.call_id == "c1"


def test_successful_result_is_staged_for_promotion(make_pipeline, fake_handler_registry, scenario_args):
    pipeline = make_pipeline(registry=fake_handler_registry(save_order_draft=RecordingHandler(value=saved_order(7))))
    buffer = HoldingBuffer("t1")
    trace = TraceRecorder()

    pipeline.run(_envelope(as_json(scenario_args)), "conv-1", buffer=buffer, trace=trace)

    assert [(e.key, e.value) for e in buffer.entries()] == [("savedOrderRequestId", 7)]
    assert trace.of_type("context_staged")[0].payload["keys"] == ["savedOrderRequestId"]


def test_rejected_call_stages_nothing(make_pipeline):
    pipeline = make_pipeline()
    buffer = HoldingBuffer("t1")
    trace = TraceRecorder()

    pipeline.run(_envelope("{}"), "conv-1", buffer=buffer, trace=trace)

    assert len(buffer) == 0
    assert trace.of_type("tool_rejected")[0].payload["error_type"] == "CONSTRAINT_VIOLATION"


def test_save_and_summarize_against_real_storage(make_pipeline, scenario_args):
    pipeline = make_pipeline()

    saved = pipeline.run(_envelope(as_json(scenario_args)), "conv-1")
    order_id = saved.to_wire()["result"]["savedOrderRequestId"]

    follow_up = dict(scenario_args, itemNum="B2", quantity=2, referencedOrderRequestId=order_id)
    linked = pipeline.run(_envelope(as_json(follow_up), call_id="c2"), "conv-1")
    report = pipeline.run(
        _envelope('{"status": "draft"}', tool_name="summarize_order_requests", call_id="c3"),
        "conv-1",
    )

    assert saved.ok and linked.ok and report.ok
    assert linked.to_wire()["result"]["referencedOrderRequestId"] == order_id
    assert report.to_wire()["result"]["orderReport"] == {
        "orderCount": 2,
        "totalQuantity": 5,
        "itemNums": ["A1", "B2"],
    }


def test_reference_to_missing_order_is_a_business_rule_error(make_pipeline, scenario_args):
    pipeline = make_pipeline()
    trace = TraceRecorder()
    args = dict(scenario_args, referencedOrderRequestId=999)

    result = pipeline.run(_envelope(as_json(args)), "conv-1", trace=trace)

    assert result.status == ResultStatus.error
    assert "999 does not exist" in result.result.message
    assert trace.of_type("tool_executed")[0].payload["error_type"] == "BUSINESS_RULE_ERROR"


def test_deprecated_status_is_rejected(make_pipeline, scenario_args):
    pipeline = make_pipeline()
    args = dict(scenario_args, status="pending_review")

    result = pipeline.run(_envelope(as_json(args)), "conv-1")

    assert result.status == ResultStatus.error
    assert "status" in result.result.message


def test_executed_call_with_unbuildable_result_is_still_finished(make_pipeline, fake_handler_registry, scenario_args):
    handler = RecordingHandler(value=None)
    pipeline = make_pipeline(registry=fake_handler_registry(save_order_draft=handler))

    result = pipeline.run(_envelope(as_json(scenario_args)), "conv-1")

    assert handler.call_count == 1
    assert result.status == ResultStatus.error
    assert "could not be reported" in result.result.message
    [step] = pipeline.recorder.list_run_steps("conv-1")
    assert step.outcome == "error"
    assert step.output == result.to_wire()
    assert pipeline.recorder.list_unknown_outcomes("conv-1") == []


def test_unexpected_pipeline_error_is_still_finished(make_pipeline, fake_handler_registry, scenario_args):
    pipeline = make_pipeline(registry=fake_handler_registry(save_order_draft=RecordingHandler(value=saved_order(7))))

    def broken_shape(tool_name, outcome):
        raise KeyError("shaper bug")

    pipeline.shaper.shape = broken_shape

    result = pipeline.run(_envelope(as_json(scenario_args)), "conv-1")

    assert result.status == ResultStatus.error
    assert "shaper bug" not in result.to_json()
    [step] = pipeline.recorder.list_run_steps("conv-1")
    assert step.output == result.to_wire()


def test_unknown_tool_opens_no_session(make_pipeline, session_factory):
    opened = []

    def counting_factory():
        opened.append(1)
        return session_factory()

    pipeline = make_pipeline()
    pipeline._session_factory = counting_factory

    result = pipeline.run(_envelope("{}", tool_name="delete_everything"), "conv-1")

    assert result.status == ResultStatus.error
    assert opened == []
    [step] = pipeline.recorder.list_run_steps("conv-1")
    assert step.outcome == "error"
