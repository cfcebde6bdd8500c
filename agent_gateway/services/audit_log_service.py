import json
from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional
from uuid import uuid4

from sqlalchemy import select
from sqlalchemy.orm import Session

from agent_gateway.agentic.exceptions import AuditWriteError
from agent_gateway.models.run_step import RunStep


class AuditLogService:
    """
    Centralized service for recording tool invocations.
    This service is the ONLY place where RunStep records can be created or finished.
    禁止删除 RunStep
    禁止覆盖已写入的 output
    """

    def __init__(self, db: Session):
        self.db = db

    def serialize_audit_value(self, value) -> Any:
        if value is None:
            return None
        if isinstance(value, Decimal):
            return float(value)
        if isinstance(value, (datetime, date)):
            return value.isoformat()
        if isinstance(value, Enum):
            return value.value
        if isinstance(value, (int, float, str, bool)):
            return value
        if isinstance(value, dict):
            return {str(k): self.serialize_audit_value(v) for k, v in value.items()}
        if isinstance(value, (list, tuple)):
            return [self.serialize_audit_value(v) for v in value]
        return str(value)  # 兜底

    def normalize_input(self, raw_arguments: str) -> Dict[str, Any]:
        '''
        审计输入：能解析成 JSON 对象就存对象，否则原样存 {"raw": 文本}
        （格式错误的调用也要留下原始输入）
        '''
        try:
            parsed = json.loads(raw_arguments)
        except (json.JSONDecodeError, TypeError):
            return {"raw": raw_arguments}
        if isinstance(parsed, dict):
            return self.serialize_audit_value(parsed)
        return {"raw": raw_arguments}

    def record_start(
        self,
        *,
        conversation_ref: str,
        call_id: str,
        tool_name: str,
        raw_arguments: str,
    ) -> RunStep:
        '''
        创建一条工具调用的审计记录（output 为空 = 结果未知）

        :param conversation_ref: 所属会话引用
        :type conversation_ref: str
        :param call_id: 模型运行时下发的调用 id
        :type call_id: str
        :param tool_name: 模型请求的工具名（可能未注册）
        :type tool_name: str
        :param raw_arguments: 原始参数文本
        :type raw_arguments: str
        '''
        run_step = RunStep(
            id=str(uuid4()),
            conversation_ref=conversation_ref,
            call_id=call_id,
            tool_name=tool_name,
            input=self.normalize_input(raw_arguments),
            started_at=datetime.now(timezone.utc),
            output=None,
        )
        self.db.add(run_step)
        return run_step

    def record_finish(
        self,
        *,
        run_step_id: str,
        output: Dict[str, Any],
    ) -> RunStep:
        '''
        写入完整的序列化结果。output 只能写一次。

        :param run_step_id: record_start 返回的记录 id
        :type run_step_id: str
        :param output: 序列化后的 FunctionCallResult
        :type output: Dict[str, Any]
        '''
        run_step = self.db.get(RunStep, run_step_id)
        if run_step is None:
            raise AuditWriteError(f"RunStep not found: {run_step_id}")
        if run_step.output is not None:
            raise AuditWriteError(f"RunStep {run_step_id} already has an output")
        run_step.output = self.serialize_audit_value(output)
        run_step.finished_at = datetime.now(timezone.utc)
        return run_step

    def add_note(self, *, run_step_id: str, note: str) -> None:
        '''Append an operator-facing note; output is left untouched.'''
        run_step = self.db.get(RunStep, run_step_id)
        if run_step is None:
            raise AuditWriteError(f"RunStep not found: {run_step_id}")
        run_step.note = f"{run_step.note}\n{note}" if run_step.note else note

    def list_for_conversation(self, conversation_ref: str) -> List[RunStep]:
        stmt = (
            select(RunStep)
            .where(RunStep.conversation_ref == conversation_ref)
            .order_by(RunStep.started_at, RunStep.id)
        )
        return list(self.db.scalars(stmt))

    def list_unknown_outcomes(self, conversation_ref: Optional[str] = None) -> List[RunStep]:
        stmt = select(RunStep).where(RunStep.output.is_(None))
        if conversation_ref is not None:
            stmt = stmt.where(RunStep.conversation_ref == conversation_ref)
        return list(self.db.scalars(stmt.order_by(RunStep.started_at)))
