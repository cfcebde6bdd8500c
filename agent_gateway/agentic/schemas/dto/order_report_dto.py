from pydantic import Field, field_validator
from typing import List, Optional

from agent_gateway.agentic.schemas.dto.base_dto import BaseDTO, ExternalArgs, InternalPayload
from agent_gateway.agentic.schemas.tool_result import ToolResultBody
from agent_gateway.agentic.transform.payload_transform import FieldRule, PayloadTransform
from agent_gateway.db.enums import OrderStatus, parse_active
from agent_gateway.models.order_request import OrderRequest


class OrderReportDTO(BaseDTO):
    order_count: int
    total_quantity: int
    item_nums: List[str]

    @classmethod
    def from_domain_model(cls, orders: List[OrderRequest]) -> "OrderReportDTO":
        return cls(
            order_count=len(orders),
            total_quantity=sum(o.quantity for o in orders),
            item_nums=sorted({o.item_num for o in orders}),
        )


class SummarizeOrderRequestsArgs(ExternalArgs):
    status: Optional[OrderStatus] = Field(description="Only count requests in this status; null for all")

    @field_validator("status", mode="before")
    @classmethod
    def _active_status(cls, v):
        if v is None:
            return None
        return parse_active(OrderStatus, v)


class OrderReportPayload(InternalPayload):
    status_filter: str  # "" = no filter


ORDER_REPORT_TRANSFORM = PayloadTransform(
    OrderReportPayload,
    [
        FieldRule(
            "status",
            "status_filter",
            default="",
            convert=lambda v: v.value if isinstance(v, OrderStatus) else v,
        ),
    ],
)


class SummarizeOrderRequestsResult(ToolResultBody):
    order_report: Optional[OrderReportDTO] = None
