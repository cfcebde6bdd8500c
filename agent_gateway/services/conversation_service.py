from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from uuid import uuid4

from sqlalchemy import select
from sqlalchemy.orm import Session

from agent_gateway.agentic.schemas.additional_data import AdditionalData, InputContext
from agent_gateway.models.chat_message import ChatMessage


class ConversationService:
    """
    Persists chat messages and their additional data.
    只允许向消息合并 derived 上下文，不修改 content，不删除消息
    """

    def __init__(self, db: Session):
        self.db = db

    def create_message(
        self,
        *,
        conversation_id: str,
        role: str,
        content: str,
        input_context: Optional[InputContext] = None,
    ) -> ChatMessage:
        '''
        创建一条消息；input 子集由调用方提供，derived 子集初始为空

        :param conversation_id: 会话 id
        :type conversation_id: str
        :param role: "user" | "assistant"
        :type role: str
        :param content: 消息文本
        :type content: str
        :param input_context: 上游提供的附件/标识
        :type input_context: Optional[InputContext]
        '''
        data = AdditionalData(input=input_context or InputContext())
        message = ChatMessage(
            id=str(uuid4()),
            conversation_id=conversation_id,
            role=role,
            content=content,
            created_at=datetime.now(timezone.utc),
            additional_data=data.to_storage(),
        )
        self.db.add(message)
        self.db.flush()
        return message

    def get_message(self, message_id: str) -> Optional[ChatMessage]:
        return self.db.get(ChatMessage, message_id)

    def list_messages(self, conversation_id: str) -> List[ChatMessage]:
        stmt = (
            select(ChatMessage)
            .where(ChatMessage.conversation_id == conversation_id)
            .order_by(ChatMessage.created_at, ChatMessage.id)
        )
        return list(self.db.scalars(stmt))

    def merge_derived_context(self, *, message_id: str, updates: Dict[str, Any]) -> AdditionalData:
        '''
        把派生字段合并进消息的 derived 子集（merge-only，input 子集保持不变）
        Raises ValueError if the message does not exist, pydantic.ValidationError
        if updates carry keys outside the deployment's DerivedContext schema.
        '''
        message = self.db.get(ChatMessage, message_id)
        if message is None:
            raise ValueError(f"ChatMessage not found: {message_id}")

        data = AdditionalData.from_storage(message.additional_data)
        merged = AdditionalData(input=data.input, derived=data.derived.merged(updates))
        # JSON 列需要整体重新赋值才会被标记为已修改
        message.additional_data = merged.to_storage()
        return merged

    def get_additional_data(self, message_id: str) -> AdditionalData:
        message = self.db.get(ChatMessage, message_id)
        if message is None:
            raise ValueError(f"ChatMessage not found: {message_id}")
        return AdditionalData.from_storage(message.additional_data)
