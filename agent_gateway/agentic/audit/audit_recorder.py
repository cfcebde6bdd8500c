# agent_gateway/agentic/audit/audit_recorder.py
import threading
from dataclasses import dataclass
from typing import Callable, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from agent_gateway.agentic.exceptions import AuditWriteError
from agent_gateway.agentic.schemas.tool_result import FunctionCallResult
from agent_gateway.db.session import get_session_factory
from agent_gateway.logger import get_logger
from agent_gateway.models.run_step import RunStep
from agent_gateway.services.audit_log_service import AuditLogService

logger = get_logger(__name__)


@dataclass(frozen=True)
class RunStepHandle:
    run_step_id: str
    call_id: str
    tool_name: str


class AuditRecorder:
    """
    Writes one RunStep per tool invocation.

    Every write (start, finish, note) is its own committed transaction in its
    own session, so concurrent calls in a turn never share a record or a
    transaction. Writes are serialized with a lock: SQLite allows one writer.
    """

    def __init__(self, session_factory: Optional[Callable[[], Session]] = None):
        self._session_factory = session_factory or get_session_factory()
        self._write_lock = threading.Lock()

    def record_start(
        self,
        conversation_ref: str,
        call_id: str,
        tool_name: str,
        raw_arguments: str,
    ) -> RunStepHandle:
        '''
        Must run before validation/dispatch so the input survives a later crash.
        Raises AuditWriteError if the row cannot be persisted.
        '''
        with self._write_lock:
            db = self._session_factory()
            try:
                run_step = AuditLogService(db).record_start(
                    conversation_ref=conversation_ref,
                    call_id=call_id,
                    tool_name=tool_name,
                    raw_arguments=raw_arguments,
                )
                db.commit()
                handle = RunStepHandle(run_step_id=run_step.id, call_id=call_id, tool_name=tool_name)
            except SQLAlchemyError as e:
                db.rollback()
                raise AuditWriteError(f"record_start failed for call {call_id}") from e
            finally:
                db.close()
        logger.debug("RunStep %s started (tool=%s, call_id=%s).", handle.run_step_id, tool_name, call_id)
        return handle

    def record_finish(self, handle: RunStepHandle, result: FunctionCallResult) -> None:
        '''
        Write the full serialized result, whatever its status. Output is set once;
        a second call raises AuditWriteError.
        '''
        with self._write_lock:
            db = self._session_factory()
            try:
                AuditLogService(db).record_finish(
                    run_step_id=handle.run_step_id,
                    output=result.to_wire(),
                )
                db.commit()
            except SQLAlchemyError as e:
                db.rollback()
                raise AuditWriteError(f"record_finish failed for call {handle.call_id}") from e
            except AuditWriteError:
                db.rollback()
                raise
            finally:
                db.close()
        logger.debug("RunStep %s finished (status=%s).", handle.run_step_id, result.status.value)

    def add_note(self, handle: RunStepHandle, note: str) -> None:
        with self._write_lock:
            db = self._session_factory()
            try:
                AuditLogService(db).add_note(run_step_id=handle.run_step_id, note=note)
                db.commit()
            except SQLAlchemyError as e:
                db.rollback()
                raise AuditWriteError(f"add_note failed for call {handle.call_id}") from e
            finally:
                db.close()

    # =========
    # Operator-facing reads
    # =========
    def list_run_steps(self, conversation_ref: str) -> List[RunStep]:
        db = self._session_factory()
        try:
            return AuditLogService(db).list_for_conversation(conversation_ref)
        finally:
            db.close()

    def list_unknown_outcomes(self, conversation_ref: Optional[str] = None) -> List[RunStep]:
        '''
        RunSteps with no output: the process stopped between start and finish.
        These are "unknown outcome", neither success nor failure.
        '''
        db = self._session_factory()
        try:
            return AuditLogService(db).list_unknown_outcomes(conversation_ref)
        finally:
            db.close()
