# agent_gateway/agentic/context/context_promoter.py
import threading
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from agent_gateway.agentic.exceptions import PromotionError
from agent_gateway.agentic.schemas.error_type import ErrorType
from agent_gateway.agentic.schemas.tool_result import FunctionCallResult
from agent_gateway.db.session import get_session_factory
from agent_gateway.logger import get_logger
from agent_gateway.services.conversation_service import ConversationService

logger = get_logger(__name__)


@dataclass(frozen=True)
class StagedValue:
    ordinal: int      # 调用在本轮中的序号（按 call 顺序而非完成顺序）
    tool_name: str
    key: str
    value: Any


class HoldingBuffer:
    '''
    本轮独占的暂存区：从"工具执行完"到"下一条 assistant 消息落库"之间有效。
    并发工具调用会同时 stage，用锁保护。
    '''

    def __init__(self, turn_id: str):
        self.turn_id = turn_id
        self._entries: List[StagedValue] = []
        self._lock = threading.Lock()

    def stage(self, entry: StagedValue) -> None:
        with self._lock:
            self._entries.append(entry)

    def entries(self) -> List[StagedValue]:
        with self._lock:
            return list(self._entries)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


class ContextPromoter:
    """
    Carries a whitelisted subset of successful tool results into the next
    persisted message's derived context.

    Conflict policy when two staged values share a key:
    - same tool: the later call (by ordinal) wins
    - different tools: the earlier call (by ordinal) wins; the later value is dropped and logged
    """

    def __init__(
        self,
        whitelist: Mapping[str, Sequence[str]],
        session_factory: Optional[Callable[[], Session]] = None,
    ):
        self.whitelist = {tool: tuple(fields) for tool, fields in whitelist.items()}
        self._session_factory = session_factory or get_session_factory()

    def promote(
        self,
        tool_name: str,
        result: FunctionCallResult,
        buffer: HoldingBuffer,
        ordinal: int = 0,
    ) -> List[str]:
        '''
        Stage whitelisted, non-null fields of a successful result.
        Error results and tools without a whitelist entry stage nothing.
        '''
        if not result.ok:
            return []
        allowed = self.whitelist.get(tool_name, ())
        body = result.to_wire()["result"]
        staged = []
        for key in allowed:
            value = body.get(key)
            if value is None:
                continue
            buffer.stage(StagedValue(ordinal=ordinal, tool_name=tool_name, key=key, value=value))
            staged.append(key)
        return staged

    def resolve(self, entries: List[StagedValue]) -> Dict[str, Any]:
        updates: Dict[str, Any] = {}
        owners: Dict[str, str] = {}
        for entry in sorted(entries, key=lambda e: e.ordinal):
            owner = owners.get(entry.key)
            if owner is not None and owner != entry.tool_name:
                logger.warning(
                    "Derived key '%s' already set by '%s' this turn; dropping value from '%s'.",
                    entry.key, owner, entry.tool_name,
                )
                continue
            updates[entry.key] = entry.value
            owners[entry.key] = entry.tool_name
        return updates

    def flush(self, buffer: HoldingBuffer, message_id: str) -> List[str]:
        '''
        Merge the buffer into the message's derived context and clear the buffer.
        The buffer is cleared on every path. A failed merge degrades to
        "no context carried forward" and returns [].
        '''
        try:
            updates = self.resolve(buffer.entries())
            if not updates:
                return []
            self._merge(message_id, updates)
            logger.info("Promoted %s into message %s (turn %s).", sorted(updates), message_id, buffer.turn_id)
            return sorted(updates)
        except PromotionError as e:
            logger.warning(
                "%s: context for message %s not carried forward (turn %s): %s",
                ErrorType.PROMOTION_FAILURE.value, message_id, buffer.turn_id, e.__cause__ or e,
            )
            return []
        finally:
            buffer.clear()

    def _merge(self, message_id: str, updates: Dict[str, Any]) -> None:
        db = self._session_factory()
        try:
            ConversationService(db).merge_derived_context(message_id=message_id, updates=updates)
            db.commit()
        except (SQLAlchemyError, ValueError) as e:
            # ValueError 包括 pydantic.ValidationError（白名单字段不在 DerivedContext 中）
            db.rollback()
            raise PromotionError(f"could not merge {sorted(updates)} into message {message_id}") from e
        finally:
            db.close()

    def discard(self, buffer: HoldingBuffer) -> None:
        '''No new message will be persisted this turn: drop staged values.'''
        dropped = len(buffer)
        buffer.clear()
        if dropped:
            logger.info("Discarded %d staged value(s) for turn %s.", dropped, buffer.turn_id)
