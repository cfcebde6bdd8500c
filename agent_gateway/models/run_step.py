# agent_gateway/models/run_step.py
from sqlalchemy import String, DateTime, JSON, Text, func
from agent_gateway.db.base import Base
from sqlalchemy.orm import Mapped, mapped_column
from datetime import datetime
from typing import Optional


class RunStep(Base):
    """
    Audit entry for one tool invocation.

    Invariants:
    - Append-only: rows are never deleted
    - input is written once at start
    - output is written once at finish; NULL means the outcome is unknown
    - Never rendered in any end-user surface
    """
    __tablename__ = "run_steps"

    # =========
    # 🔒 Immutable fields (written at record_start)
    # =========
    id :Mapped[str] = mapped_column(String(36), primary_key=True, comment="RunStep UUID")

    conversation_ref :Mapped[str] = mapped_column(String(64), nullable=False, index=True, comment="Conversation the tool call belongs to")

    call_id :Mapped[str] = mapped_column(String(128), nullable=False, comment="Tool call id issued by the model runtime")

    tool_name :Mapped[str] = mapped_column(String(128), nullable=False, comment="Tool name as issued by the model (may be unknown)")

    input :Mapped[dict] = mapped_column(JSON, nullable=False, comment="Raw or normalized tool arguments")

    started_at :Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
        comment="Timestamp when the call was received"
    )

    # =========
    # ✍️ Set exactly once (written at record_finish)
    # =========
    output :Mapped[Optional[dict]] = mapped_column(JSON(none_as_null=True), nullable=True, comment="Serialized FunctionCallResult; NULL = unknown outcome")

    finished_at :Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True, comment="Timestamp when output was written")

    note :Mapped[Optional[str]] = mapped_column(Text, nullable=True, comment="Operator-facing note, e.g. cancellation context")

    @property
    def outcome(self) -> str:
        '''
        Outcome derived from the presence of output: "unknown" | "success" | "error".
        '''
        if self.output is None:
            return "unknown"
        return self.output.get("status", "unknown")

    # =========
    # Optional: representation
    # =========
    def __repr__(self) -> str:
        return (
            f"<RunStep tool={self.tool_name} "
            f"call_id={self.call_id} "
            f"outcome={self.outcome}>"
        )
