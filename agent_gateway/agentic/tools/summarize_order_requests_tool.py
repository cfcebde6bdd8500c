from typing import Any, Dict, List

from agent_gateway.agentic.schemas.dto.order_report_dto import (
    ORDER_REPORT_TRANSFORM,
    OrderReportDTO,
    OrderReportPayload,
    SummarizeOrderRequestsArgs,
    SummarizeOrderRequestsResult,
)
from agent_gateway.agentic.schemas.tool_spec import ToolContext, ToolSpec
from agent_gateway.agentic.tools.registry import tool_registry
from agent_gateway.db.enums import OrderStatus
from agent_gateway.models.order_request import OrderRequest
from agent_gateway.services.order_request_service import OrderRequestService


def summarize_order_requests_tool(payload: OrderReportPayload, ctx: ToolContext) -> List[OrderRequest]:
    # 只读，不需要 commit
    status = OrderStatus(payload.status_filter) if payload.status_filter else None
    return OrderRequestService(ctx.db).list_for_conversation(ctx.conversation_ref, status=status)


def build_order_report_result(orders: List[OrderRequest]) -> Dict[str, Any]:
    report = OrderReportDTO.from_domain_model(orders)
    return {
        "message": (
            f"Report ready: {report.order_count} order request(s), "
            f"total quantity {report.total_quantity}."
        ),
        "order_report": report,
    }


spec = ToolSpec(
    name="summarize_order_requests",
    description=(
        "Summarize the order requests drafted in this conversation. "
        "status filters by lifecycle status; null counts all."
    ),
    argument_schema=SummarizeOrderRequestsArgs,
    transform=ORDER_REPORT_TRANSFORM,
    handler=summarize_order_requests_tool,
    result_model=SummarizeOrderRequestsResult,
    build_result=build_order_report_result,
    example_usage='{"status": null}',
)

tool_registry.register(spec)
