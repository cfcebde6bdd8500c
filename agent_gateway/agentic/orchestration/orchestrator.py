# agent_gateway/agentic/orchestration/orchestrator.py
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, List, Optional
from uuid import uuid4

from sqlalchemy.orm import Session

from agent_gateway.agentic.audit.audit_recorder import RunStepHandle
from agent_gateway.agentic.context.context_promoter import ContextPromoter, HoldingBuffer
from agent_gateway.agentic.exceptions import AuditWriteError
from agent_gateway.agentic.orchestration.pipeline import ToolCallPipeline
from agent_gateway.agentic.orchestration.trace import TraceRecorder
from agent_gateway.agentic.schemas.additional_data import InputContext
from agent_gateway.agentic.schemas.tool_call import FunctionCallOutput, ToolCallEnvelope
from agent_gateway.db.session import get_session_factory
from agent_gateway.logger import get_logger
from agent_gateway.models.chat_message import ChatMessage
from agent_gateway.services.conversation_service import ConversationService

logger = get_logger(__name__)


class TurnOrchestrator:
    '''
    一个会话的回合驱动器

    状态	说明
    IDLE	没有进行中的回合
    TOOLS	正在执行本轮的工具调用（可多批）
    DONE	本轮已落库 assistant 消息（flush）或已放弃（discard），回到 IDLE 前的终态
    '''

    def __init__(
        self,
        pipeline: ToolCallPipeline,
        promoter: ContextPromoter,
        conversation_ref: str,
        max_concurrent_tool_calls: int = 4,
        session_factory: Optional[Callable[[], Session]] = None,
    ):
        self.pipeline = pipeline
        self.promoter = promoter
        self.conversation_ref = conversation_ref
        self.max_concurrent_tool_calls = max_concurrent_tool_calls
        self._session_factory = session_factory or get_session_factory()
        self._cancel_event = threading.Event()
        self._in_flight = 0
        self._in_flight_lock = threading.Lock()
        self.state = "IDLE"
        self.buffer: Optional[HoldingBuffer] = None
        self.trace: Optional[TraceRecorder] = None
        self._ordinal = 0

    # =========
    # Turn lifecycle
    # =========
    def begin_turn(self) -> str:
        if self.state == "TOOLS":
            raise RuntimeError("A turn is already in progress")
        turn_id = str(uuid4())
        self.buffer = HoldingBuffer(turn_id)
        self.trace = TraceRecorder()
        self._cancel_event.clear()
        self._ordinal = 0
        self.state = "TOOLS"
        self.trace.emit("state_enter", state=self.state, turn_id=turn_id)
        return turn_id

    def record_user_message(self, content: str, input_context: Optional[InputContext] = None) -> ChatMessage:
        '''
        A new user message ends any turn still open (e.g. after cancel()):
        its staged context is discarded, never flushed into a later message.
        '''
        if self.state == "TOOLS":
            logger.info("New user message in %s; discarding the open turn.", self.conversation_ref)
            self.abort_turn()
        with self._session_factory() as db:
            message = ConversationService(db).create_message(
                conversation_id=self.conversation_ref,
                role="user",
                content=content,
                input_context=input_context,
            )
            db.commit()
            return message

    def run_tool_calls(self, envelopes: List[ToolCallEnvelope]) -> List[FunctionCallOutput]:
        '''
        Run one batch of tool calls concurrently (bounded) and return one
        function_call_output per envelope, in envelope order, each keyed by
        its own call_id regardless of completion order.
        '''
        if self.state != "TOOLS":
            self.begin_turn()
        if not envelopes:
            return []

        first_ordinal = self._ordinal
        self._ordinal += len(envelopes)
        with self._in_flight_lock:
            self._in_flight += 1
        try:
            workers = min(len(envelopes), self.max_concurrent_tool_calls)
            with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="tool-call") as pool:
                futures = {
                    pool.submit(self._run_one, envelope, first_ordinal + i): i
                    for i, envelope in enumerate(envelopes)
                }
                results_by_index = {}
                for future in futures:
                    idx = futures[future]
                    try:
                        results_by_index[idx] = future.result()
                    except AuditWriteError:
                        # 合规部署下审计失败要让整个请求失败
                        raise
                    except Exception:
                        logger.exception("Tool call %s failed outside the pipeline.", envelopes[idx].call_id)
                        results_by_index[idx] = self.pipeline.shaper.internal_error(envelopes[idx].tool_name)
        finally:
            with self._in_flight_lock:
                self._in_flight -= 1

        return [
            FunctionCallOutput.from_result(envelopes[i].call_id, results_by_index[i])
            for i in range(len(envelopes))
        ]

    def cancel(self) -> None:
        '''
        Upstream interrupt. Calls not yet started are skipped; calls already
        dispatching run to completion and are audited normally.
        '''
        self._cancel_event.set()
        if self.trace is not None:
            self.trace.emit("turn_cancelled", conversation_ref=self.conversation_ref)

    def complete_turn(self, content: str) -> ChatMessage:
        '''
        Persist the assistant message for this turn and flush promoted context into it.
        The holding buffer is cleared whether or not persisting succeeds.
        '''
        self._ensure_no_calls_in_flight()
        buffer = self.buffer
        try:
            with self._session_factory() as db:
                message = ConversationService(db).create_message(
                    conversation_id=self.conversation_ref,
                    role="assistant",
                    content=content,
                )
                db.commit()
            if buffer is not None:
                keys = self.promoter.flush(buffer, message.id)
                if self.trace is not None:
                    self.trace.emit("context_flushed", message_id=message.id, keys=keys)
            return message
        finally:
            if buffer is not None:
                buffer.clear()
            self._end_turn()

    def abort_turn(self) -> None:
        '''No assistant message will be persisted: drop anything staged this turn.'''
        self._ensure_no_calls_in_flight()
        if self.buffer is not None:
            self.promoter.discard(self.buffer)
        if self.trace is not None:
            self.trace.emit("turn_aborted", conversation_ref=self.conversation_ref)
        self._end_turn()

    # =========
    # Internals
    # =========
    def _run_one(self, envelope: ToolCallEnvelope, ordinal: int):
        if self._cancel_event.is_set():
            logger.info("Skipping call %s (%s): turn cancelled before execution.", envelope.call_id, envelope.tool_name)
            self.trace.emit("tool_call_skipped", call_id=envelope.call_id, tool_name=envelope.tool_name)
            return self.pipeline.shaper.error(
                envelope.tool_name,
                "The user interrupted the turn; this call was not executed.",
            )

        dispatched: List[RunStepHandle] = []
        result = self.pipeline.run(
            envelope,
            self.conversation_ref,
            buffer=self.buffer,
            ordinal=ordinal,
            trace=self.trace,
            on_dispatch=dispatched.append,
        )
        if dispatched and self._cancel_event.is_set():
            try:
                self.pipeline.recorder.add_note(
                    dispatched[0], "Turn was cancelled while this call was in flight; it ran to completion."
                )
            except AuditWriteError:
                logger.warning("Could not annotate RunStep %s after cancellation.", dispatched[0].run_step_id)
        return result

    def _ensure_no_calls_in_flight(self) -> None:
        with self._in_flight_lock:
            if self._in_flight:
                raise RuntimeError("Tool calls are still running; flush must wait for them")

    def _end_turn(self) -> None:
        self.state = "DONE"
        if self.trace is not None:
            self.trace.emit("state_enter", state=self.state)
            self.trace.dump()
        self.buffer = None
        self.state = "IDLE"
