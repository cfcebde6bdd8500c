from typing import Optional

from agent_gateway.agentic.audit.audit_recorder import AuditRecorder
from agent_gateway.agentic.context.context_promoter import ContextPromoter
from agent_gateway.agentic.orchestration.orchestrator import TurnOrchestrator
from agent_gateway.agentic.orchestration.pipeline import ToolCallPipeline
from agent_gateway.agentic.tools.auto_discover import discover_tools
from agent_gateway.agentic.tools.registry import ToolRegistry
from agent_gateway.config import Settings, load_settings
from agent_gateway.db.session import get_session_factory


def build_pipeline(settings: Optional[Settings] = None, registry: Optional[ToolRegistry] = None) -> ToolCallPipeline:
    settings = settings or load_settings()
    registry = registry or discover_tools()# 1. 注册并冻结全局工具表
    session_factory = get_session_factory()

    recorder = AuditRecorder(session_factory)# 2. 审计
    promoter = ContextPromoter(settings.promotion_whitelist, session_factory)# 3. 上下文晋升

    return ToolCallPipeline(
        registry=registry,
        recorder=recorder,
        promoter=promoter,
        session_factory=session_factory,
        audit_required=settings.audit_required,
    )


def build_orchestrator(
    conversation_ref: str,
    settings: Optional[Settings] = None,
    registry: Optional[ToolRegistry] = None,
) -> TurnOrchestrator:
    settings = settings or load_settings()
    pipeline = build_pipeline(settings, registry)
    return TurnOrchestrator(
        pipeline=pipeline,
        promoter=pipeline.promoter,
        conversation_ref=conversation_ref,
        max_concurrent_tool_calls=settings.max_concurrent_tool_calls,
        session_factory=get_session_factory(),
    )
