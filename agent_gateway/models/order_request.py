# agent_gateway/models/order_request.py
from sqlalchemy import String, DateTime, Integer, Enum, func
from agent_gateway.db.base import Base
from agent_gateway.db.enums import OrderStatus, UnitOfMeasure
from sqlalchemy.orm import Mapped, mapped_column
from datetime import datetime
from typing import Optional


class OrderRequest(Base):
    """
    Order request drafted by the agent on behalf of a user.
    Status and uom columns use the full enum sets so historical rows stay readable.
    """
    __tablename__ = "order_requests"

    # =========
    # 🔒 Identity & ownership
    # =========
    id :Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True, comment="OrderRequest id")

    conversation_ref :Mapped[str] = mapped_column(String(64), nullable=False, index=True, comment="Conversation that drafted the order")

    created_at :Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
        comment="Creation timestamp"
    )

    # =========
    # ✍️ Business fields (non-null internally)
    # =========
    item_num :Mapped[str] = mapped_column(String(64), nullable=False, comment="Item number")
    quantity :Mapped[int] = mapped_column(Integer, nullable=False, comment="Ordered quantity")
    pack_size :Mapped[str] = mapped_column(String(32), nullable=False, default="", comment="Pack size; empty string when not given")
    uom :Mapped[UnitOfMeasure] = mapped_column(
        Enum(UnitOfMeasure, name="unit_of_measure"),
        nullable=False,
        comment="Unit of measure"
    )
    status :Mapped[OrderStatus] = mapped_column(
        Enum(OrderStatus, name="order_status"),
        nullable=False,
        default=OrderStatus.draft,
        comment="Order lifecycle status"
    )

    # 状态由存在性表达：有值即已关联到已有订单，无需额外布尔标志
    referenced_order_request_id :Mapped[Optional[int]] = mapped_column(
        Integer,
        nullable=True,
        comment="Existing order request this draft amends, if any"
    )

    def __repr__(self) -> str:
        return f"<OrderRequest id={self.id} item_num={self.item_num} status={self.status.value}>"
