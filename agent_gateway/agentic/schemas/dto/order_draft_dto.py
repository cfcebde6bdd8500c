from pydantic import Field, field_validator
from typing import Optional

from agent_gateway.agentic.schemas.dto.base_dto import ExternalArgs, InternalPayload
from agent_gateway.agentic.schemas.tool_result import ToolResultBody
from agent_gateway.agentic.transform.payload_transform import FieldRule, PayloadTransform
from agent_gateway.db.enums import Confidence, OrderStatus, UnitOfMeasure, parse_active


class SaveOrderDraftArgs(ExternalArgs):
    # 外部 schema：packSize 必须出现但可为 null
    item_num: str = Field(min_length=1, description="Item number, e.g. 'A1'")
    quantity: int = Field(gt=0, description="Ordered quantity")
    pack_size: Optional[str] = Field(description="Pack size; null when the user did not give one")
    uom: UnitOfMeasure = Field(description="Unit of measure")
    status: OrderStatus = Field(description="Lifecycle status for the new request")
    confidence: Confidence = Field(description="How sure the agent is about the extracted fields")
    referenced_order_request_id: Optional[int] = Field(
        default=None, gt=0, description="Existing order request this draft amends"
    )

    @field_validator("uom", mode="before")
    @classmethod
    def _active_uom(cls, v):
        return parse_active(UnitOfMeasure, v)

    @field_validator("status", mode="before")
    @classmethod
    def _active_status(cls, v):
        return parse_active(OrderStatus, v)

    @field_validator("confidence", mode="before")
    @classmethod
    def _active_confidence(cls, v):
        return parse_active(Confidence, v)


class OrderDraftPayload(InternalPayload):
    item_num: str
    quantity: int
    pack_size: str
    uom: UnitOfMeasure
    status: OrderStatus
    confidence: Confidence
    referenced_order_request_id: Optional[int] = None


# 每个字段的空值策略在这里声明，不做推断
ORDER_DRAFT_TRANSFORM = PayloadTransform(
    OrderDraftPayload,
    [
        FieldRule("itemNum", "item_num"),
        FieldRule("quantity", "quantity"),
        FieldRule("packSize", "pack_size", default=""),
        FieldRule("uom", "uom"),
        # status/confidence 是给本系统用的元数据，转发给持久化 API 时丢弃
        FieldRule("status", "status", default=OrderStatus.draft, export=False),
        FieldRule("confidence", "confidence", default=Confidence.low, export=False),
        FieldRule("referencedOrderRequestId", "referenced_order_request_id", nullable=True),
    ],
)


class SaveOrderDraftResult(ToolResultBody):
    saved_order_request_id: Optional[int] = None
    referenced_order_request_id: Optional[int] = None
