# agent_gateway/models/chat_message.py
from sqlalchemy import String, DateTime, JSON, Text, func
from agent_gateway.db.base import Base
from sqlalchemy.orm import Mapped, mapped_column
from datetime import datetime
from typing import Any, Dict


class ChatMessage(Base):
    __tablename__ = "chat_messages"

    # =========
    # 🔒 Immutable facts
    # =========
    id :Mapped[str] = mapped_column(String(36), primary_key=True, comment="ChatMessage UUID")

    conversation_id :Mapped[str] = mapped_column(String(64), nullable=False, index=True, comment="Owning conversation")

    role :Mapped[str] = mapped_column(String(16), nullable=False, comment="user | assistant")

    content :Mapped[str] = mapped_column(Text, nullable=False, default="", comment="Message text")

    created_at :Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
        comment="Creation timestamp"
    )

    # =========
    # 🔁 Merge-only (input subset from caller, derived subset from the tool pipeline)
    # =========
    additional_data :Mapped[Dict[str, Any]] = mapped_column(
        JSON,
        nullable=False,
        default=dict,
        comment="{'input': {...}, 'derived': {...}} per AdditionalData"
    )

    def __repr__(self) -> str:
        return f"<ChatMessage id={self.id} role={self.role}>"
