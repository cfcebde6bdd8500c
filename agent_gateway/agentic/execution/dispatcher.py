# agent_gateway/agentic/execution/dispatcher.py
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError

from agent_gateway.agentic.exceptions import ToolHandlerError
from agent_gateway.agentic.execution.outcome import ExecutionOutcome, Failure, Success
from agent_gateway.agentic.schemas.dto.base_dto import InternalPayload
from agent_gateway.agentic.schemas.error_type import ErrorType
from agent_gateway.agentic.schemas.tool_spec import ToolContext
from agent_gateway.agentic.tools.registry import ToolRegistry
from agent_gateway.logger import get_logger

logger = get_logger(__name__)


class ToolDispatcher:
    '''
    只负责路由和统一捕获结果，不含业务逻辑，不重试。
    '''

    def __init__(self, registry: ToolRegistry):
        self.registry = registry

    def execute(self, tool_name: str, payload: Optional[InternalPayload], ctx: ToolContext) -> ExecutionOutcome:
        '''
        Execute a registered tool handler with an already transformed payload.
        steps:
        1) lookup tool spec in the closed registry
        2) call handler(payload, ctx)
        3) convert any handler-level failure into Failure(kind, detail); detail never carries stack/internal text
        param:
        tool_name: str - The name of the tool to execute.
        payload: Optional[InternalPayload] - The payload produced by the tool's transform (None when the tool is unknown).
        ctx: ToolContext - Session and correlation ids for the handler.
        '''
        # 1 lookup
        spec = self.registry.get(tool_name)
        if not spec:
            return self.unknown_tool(tool_name, ctx.call_id)

        # 2 execute
        try:
            value = spec.handler(payload, ctx)
        except ToolHandlerError as e:
            # handler 已分类，detail 可直接给模型
            logger.warning("Tool '%s' failed (%s): %s", tool_name, e.kind.value, e.detail)
            return Failure(kind=e.kind, detail=e.detail)
        except SQLAlchemyError:
            logger.exception("Database error in tool '%s' (call_id=%s).", tool_name, ctx.call_id)
            return Failure(
                kind=ErrorType.DATABASE_ERROR,
                detail="The backend could not store or read the data. The action was not completed.",
            )
        except Exception:
            # 理论上不应该进入这里（handler 内部应已分类）
            logger.exception("Unhandled exception in tool '%s' (call_id=%s).", tool_name, ctx.call_id)
            return Failure(
                kind=ErrorType.HANDLER_FAILURE,
                detail="The backend action failed unexpectedly. The action was not completed.",
            )

        return Success(value)

    def unknown_tool(self, tool_name: str, call_id: str) -> Failure:
        '''Failure for a name outside the closed registry; needs no session.'''
        logger.warning("Unknown tool '%s' (call_id=%s).", tool_name, call_id)
        return Failure(
            kind=ErrorType.UNKNOWN_TOOL,
            detail=f"Tool '{tool_name}' does not exist. Use one of: {', '.join(self.registry.names())}.",
        )
