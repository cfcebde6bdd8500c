# agent_gateway/agentic/schemas/tool_result.py
import json
from enum import Enum
from typing import Any, Dict

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class ResultStatus(str, Enum):
    success = "success"
    error = "error"


class ToolResultBody(BaseModel):
    '''
    返回给模型的最小结果体

    参数	说明
    message: str - 面向 LLM 的自然语言说明（下一步推理用），不直接展示给终端用户
    子类只能追加后续轮次必需的标识字段；extra="forbid" 保证不会混入其他字段
    '''
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        extra="forbid",
    )

    message: str

    @classmethod
    def identifier_fields(cls) -> list:
        '''Wire names of the declared identifiers (everything except message).'''
        return [
            (field.alias or name)
            for name, field in cls.model_fields.items()
            if name != "message"
        ]


class MessageOnlyResult(ToolResultBody):
    '''Result body for calls that never resolved to a registered tool.'''


class FunctionCallResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    status: ResultStatus
    result: ToolResultBody

    @property
    def ok(self) -> bool:
        return self.status == ResultStatus.success

    def to_wire(self) -> Dict[str, Any]:
        # 按具体子类序列化，保留 null 标识字段
        return {
            "status": self.status.value,
            "result": self.result.model_dump(by_alias=True, mode="json"),
        }

    def to_json(self) -> str:
        return json.dumps(self.to_wire(), ensure_ascii=False)
