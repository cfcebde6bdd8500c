# agent_gateway/agentic/orchestration/pipeline.py
from typing import Callable, Optional

from sqlalchemy.orm import Session

from agent_gateway.agentic.audit.audit_recorder import AuditRecorder, RunStepHandle
from agent_gateway.agentic.context.context_promoter import ContextPromoter, HoldingBuffer
from agent_gateway.agentic.exceptions import AuditWriteError, ToolArgumentError
from agent_gateway.agentic.execution.dispatcher import ToolDispatcher
from agent_gateway.agentic.execution.outcome import Failure
from agent_gateway.agentic.orchestration.trace import TraceRecorder
from agent_gateway.agentic.schemas.error_type import ErrorType
from agent_gateway.agentic.schemas.tool_call import ToolCallEnvelope
from agent_gateway.agentic.schemas.tool_result import FunctionCallResult
from agent_gateway.agentic.schemas.tool_spec import ToolContext
from agent_gateway.agentic.shaping.result_shaper import ResultShaper
from agent_gateway.agentic.tools.registry import ToolRegistry
from agent_gateway.agentic.validation.argument_validator import ArgumentValidator
from agent_gateway.db.session import get_session_factory
from agent_gateway.logger import get_alert_logger, get_logger

logger = get_logger(__name__)
alert_logger = get_alert_logger()


class ToolCallPipeline:
    """
    Runs one tool call end to end:
    audit start -> validate -> transform -> dispatch -> shape -> audit finish -> promote.

    The shaped result is the only thing returned to the model. Audit and
    promotion are side effects off that same result.
    """

    def __init__(
        self,
        registry: ToolRegistry,
        recorder: AuditRecorder,
        promoter: ContextPromoter,
        session_factory: Optional[Callable[[], Session]] = None,
        audit_required: bool = False,
    ):
        self.registry = registry
        self.validator = ArgumentValidator()
        self.dispatcher = ToolDispatcher(registry)
        self.shaper = ResultShaper(registry)
        self.recorder = recorder
        self.promoter = promoter
        self.audit_required = audit_required
        self._session_factory = session_factory or get_session_factory()

    def run(
        self,
        envelope: ToolCallEnvelope,
        conversation_ref: str,
        buffer: Optional[HoldingBuffer] = None,
        ordinal: int = 0,
        trace: Optional[TraceRecorder] = None,
        on_dispatch: Optional[Callable[[RunStepHandle], None]] = None,
    ) -> FunctionCallResult:
        '''
        Execute a single tool call.
        param:
        envelope: ToolCallEnvelope - the call as issued by the model runtime
        conversation_ref: str - conversation the call belongs to
        buffer: Optional[HoldingBuffer] - the turn's holding buffer; None skips promotion
        ordinal: int - position of the call within the turn (promotion ordering)
        trace: Optional[TraceRecorder] - per-turn trace
        on_dispatch: called with the RunStep handle right before the handler runs
        '''
        trace = trace or TraceRecorder()
        tool_name = envelope.tool_name
        trace.emit("tool_call_received", call_id=envelope.call_id, tool_name=tool_name)

        # 1 审计开始：必须早于校验与调度
        handle, audit_failed = self._start_audit(envelope, conversation_ref)

        # 2 校验 + 转换 + 调度
        spec = self.registry.get(tool_name)
        try:
            if spec is None:
                # 未注册的工具不需要会话
                outcome = self.dispatcher.unknown_tool(tool_name, envelope.call_id)
            else:
                args = self.validator.validate(tool_name, envelope.raw_arguments, spec.argument_schema)
                payload = spec.transform.to_internal(args)
                if handle is not None and on_dispatch is not None:
                    on_dispatch(handle)
                with self._session_factory() as db:
                    ctx = ToolContext(db=db, conversation_ref=conversation_ref, call_id=envelope.call_id)
                    outcome = self.dispatcher.execute(tool_name, payload, ctx)
            result = self.shaper.shape(tool_name, outcome)
            trace.emit(
                "tool_executed",
                call_id=envelope.call_id,
                tool_name=tool_name,
                status=result.status.value,
                error_type=outcome.kind.value if isinstance(outcome, Failure) else None,
            )
        except ToolArgumentError as e:
            # 参数问题在管道内恢复，不进入 Dispatcher
            result = self.shaper.reject(tool_name, e)
            trace.emit(
                "tool_rejected",
                call_id=envelope.call_id,
                tool_name=tool_name,
                error_type=e.error_type.value,
                fields=e.fields,
            )
        except Exception:
            # 任何意外都要变成错误结果，保证下面的审计结束一定执行
            logger.exception("Unexpected error while running call %s (tool=%s).", envelope.call_id, tool_name)
            result = self.shaper.internal_error(tool_name)
            trace.emit(
                "tool_executed",
                call_id=envelope.call_id,
                tool_name=tool_name,
                status=result.status.value,
                error_type=ErrorType.HANDLER_FAILURE.value,
            )

        # 3 审计结束：无论成功失败都写完整结果
        if handle is not None:
            audit_failed = not self._finish_audit(handle, result) or audit_failed

        if audit_failed and self.audit_required:
            raise AuditWriteError(f"Audit trail incomplete for call {envelope.call_id}")

        # 4 上下文晋升（只暂存，flush 在本轮所有调用结束后进行）
        if buffer is not None:
            promoted = self.promoter.promote(tool_name, result, buffer, ordinal=ordinal)
            if promoted:
                trace.emit("context_staged", call_id=envelope.call_id, keys=promoted)

        return result

    def _start_audit(self, envelope: ToolCallEnvelope, conversation_ref: str):
        try:
            handle = self.recorder.record_start(
                conversation_ref=conversation_ref,
                call_id=envelope.call_id,
                tool_name=envelope.tool_name,
                raw_arguments=envelope.raw_arguments,
            )
            return handle, False
        except AuditWriteError:
            alert_logger.critical(
                "%s: could not record start of call %s (tool=%s, conversation=%s).",
                ErrorType.AUDIT_WRITE_FAILURE.value, envelope.call_id, envelope.tool_name, conversation_ref,
                exc_info=True,
            )
            if self.audit_required:
                # 合规部署：没有审计记录就不执行
                raise
            return None, True

    def _finish_audit(self, handle: RunStepHandle, result: FunctionCallResult) -> bool:
        try:
            self.recorder.record_finish(handle, result)
            return True
        except AuditWriteError:
            alert_logger.critical(
                "%s: could not record output of call %s (run_step=%s).",
                ErrorType.AUDIT_WRITE_FAILURE.value, handle.call_id, handle.run_step_id,
                exc_info=True,
            )
            return False
