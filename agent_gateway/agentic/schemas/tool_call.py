# agent_gateway/agentic/schemas/tool_call.py
from typing import Literal

from pydantic import BaseModel, ConfigDict

from agent_gateway.agentic.schemas.tool_result import FunctionCallResult


class ToolCallEnvelope(BaseModel):
    '''
    agent runtime 下发的一次工具调用，只被消费一次

    参数	说明
    call_id	模型运行时分配的调用 id，输出按它回填
    tool_name	工具名（可能是未注册的名字）
    raw_arguments	序列化的参数（JSON 文本）
    '''
    model_config = ConfigDict(frozen=True)

    call_id: str
    tool_name: str
    raw_arguments: str


class FunctionCallOutput(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: Literal["function_call_output"] = "function_call_output"
    call_id: str
    output: str

    @classmethod
    def from_result(cls, call_id: str, result: FunctionCallResult) -> "FunctionCallOutput":
        return cls(call_id=call_id, output=result.to_json())
