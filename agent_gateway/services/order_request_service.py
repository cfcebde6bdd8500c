from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from agent_gateway.db.enums import Confidence, OrderStatus, UnitOfMeasure, is_active
from agent_gateway.logger import get_logger
from agent_gateway.models.order_request import OrderRequest

logger = get_logger(__name__)


class OrderRequestService:
    """
    Service for drafting and reading order requests.
    只接受激活集合中的枚举值写入；读取不受限制（历史数据可能含已废弃值）
    禁止本服务做任何 agent 协议格式化
    """

    def __init__(self, db: Session):
        self.db = db

    def create_draft(
        self,
        *,
        conversation_ref: str,
        item_num: str,
        quantity: int,
        pack_size: str,
        uom: UnitOfMeasure,
        status: OrderStatus,
        confidence: Confidence,
        referenced_order_request_id: Optional[int],
    ) -> OrderRequest:
        '''
        创建订单草稿

        :param conversation_ref: 发起草稿的会话
        :type conversation_ref: str
        :param item_num: 物料号
        :type item_num: str
        :param quantity: 数量
        :type quantity: int
        :param pack_size: 包装规格，未提供时为空字符串
        :type pack_size: str
        :param uom: 计量单位（激活集合）
        :type uom: UnitOfMeasure
        :param status: 订单状态（激活集合）
        :type status: OrderStatus
        :param confidence: 抽取置信度，只用于日志，不落库
        :type confidence: Confidence
        :param referenced_order_request_id: 关联的已有订单，可选
        :type referenced_order_request_id: Optional[int]
        :return: 新建的订单
        :rtype: OrderRequest
        '''
        if not is_active(uom) or not is_active(status):
            raise ValueError("Inactive enum value passed to create_draft")

        order = OrderRequest(
            conversation_ref=conversation_ref,
            item_num=item_num,
            quantity=quantity,
            pack_size=pack_size,
            uom=uom,
            status=status,
            referenced_order_request_id=referenced_order_request_id,
        )
        self.db.add(order)
        self.db.flush()
        logger.info(
            "Order request %s drafted (item=%s, qty=%s, confidence=%s).",
            order.id, item_num, quantity, confidence.value,
        )
        return order

    def get(self, order_request_id: int) -> Optional[OrderRequest]:
        return self.db.get(OrderRequest, order_request_id)

    def list_for_conversation(
        self,
        conversation_ref: str,
        status: Optional[OrderStatus] = None,
    ) -> List[OrderRequest]:
        stmt = select(OrderRequest).where(OrderRequest.conversation_ref == conversation_ref)
        if status is not None:
            stmt = stmt.where(OrderRequest.status == status)
        return list(self.db.scalars(stmt.order_by(OrderRequest.id)))
