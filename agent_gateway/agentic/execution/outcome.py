# agent_gateway/agentic/execution/outcome.py
from dataclasses import dataclass
from typing import Any, Union

from agent_gateway.agentic.schemas.error_type import ErrorType


@dataclass(frozen=True)
class Success:
    value: Any


@dataclass(frozen=True)
class Failure:
    '''
    kind: ErrorType - 结构化错误分类
    detail: str - 面向模型的说明，不含堆栈或内部异常信息
    '''
    kind: ErrorType
    detail: str


ExecutionOutcome = Union[Success, Failure]
