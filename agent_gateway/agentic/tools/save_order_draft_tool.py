from typing import Any, Dict

from sqlalchemy.exc import SQLAlchemyError

from agent_gateway.agentic.exceptions import ToolHandlerError
from agent_gateway.agentic.schemas.dto.order_draft_dto import (
    ORDER_DRAFT_TRANSFORM,
    OrderDraftPayload,
    SaveOrderDraftArgs,
    SaveOrderDraftResult,
)
from agent_gateway.agentic.schemas.error_type import ErrorType
from agent_gateway.agentic.schemas.tool_spec import ToolContext, ToolSpec
from agent_gateway.agentic.tools.registry import tool_registry
from agent_gateway.models.order_request import OrderRequest
from agent_gateway.services.order_request_service import OrderRequestService


def save_order_draft_tool(payload: OrderDraftPayload, ctx: ToolContext) -> OrderRequest:
    service = OrderRequestService(ctx.db)
    #检查引用的订单是否存在，调用 service 建草稿，捕获数据库异常并分类
    try:
        if payload.referenced_order_request_id is not None:
            if service.get(payload.referenced_order_request_id) is None:
                raise ToolHandlerError(
                    f"order request {payload.referenced_order_request_id} does not exist. "
                    "Set referencedOrderRequestId to null or use an id returned by an earlier call.",
                    kind=ErrorType.BUSINESS_RULE_ERROR,
                )

        order = service.create_draft(
            conversation_ref=ctx.conversation_ref,
            item_num=payload.item_num,
            quantity=payload.quantity,
            pack_size=payload.pack_size,
            uom=payload.uom,
            status=payload.status,
            confidence=payload.confidence,
            referenced_order_request_id=payload.referenced_order_request_id,
        )
        ctx.db.commit()
        return order
    except SQLAlchemyError:
        ctx.db.rollback()
        raise


def build_save_order_draft_result(order: Any) -> Dict[str, Any]:
    # 只返回后续轮次需要的标识，不返回订单实体
    return {
        "message": "Order draft saved.",
        "saved_order_request_id": order.id,
        "referenced_order_request_id": order.referenced_order_request_id,
    }


#注册工具，import时自动注册
spec = ToolSpec(
    name="save_order_draft",
    description=(
        "Save an order request draft for one item. Use when the user asks to order or re-order an item. "
        "packSize may be null when the user did not give one. Returns savedOrderRequestId for follow-up calls."
    ),
    argument_schema=SaveOrderDraftArgs,
    transform=ORDER_DRAFT_TRANSFORM,
    handler=save_order_draft_tool,
    result_model=SaveOrderDraftResult,
    build_result=build_save_order_draft_result,
    example_usage=(
        '{"itemNum": "A1", "quantity": 3, "packSize": null, "uom": "EA", '
        '"status": "draft", "confidence": "high", "referencedOrderRequestId": null}'
    ),
)

tool_registry.register(spec)
