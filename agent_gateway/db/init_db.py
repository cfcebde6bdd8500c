from agent_gateway.db.session import get_engine
from agent_gateway.db.base import Base

#-------------------导入所有表，注册到 Base.metadata-----------------------
from agent_gateway.models.run_step import RunStep
from agent_gateway.models.chat_message import ChatMessage
from agent_gateway.models.order_request import OrderRequest


def init_db():
    engine = get_engine()
    Base.metadata.create_all(bind=engine)
