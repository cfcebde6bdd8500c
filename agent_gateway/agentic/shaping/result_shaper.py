# agent_gateway/agentic/shaping/result_shaper.py
from typing import Optional, Type

from pydantic import ValidationError as PydanticValidationError

from agent_gateway.agentic.exceptions import ToolArgumentError
from agent_gateway.agentic.execution.outcome import ExecutionOutcome, Failure, Success
from agent_gateway.agentic.schemas.tool_result import (
    FunctionCallResult,
    MessageOnlyResult,
    ResultStatus,
    ToolResultBody,
)
from agent_gateway.agentic.schemas.tool_spec import ToolSpec
from agent_gateway.agentic.tools.registry import ToolRegistry
from agent_gateway.logger import get_logger

logger = get_logger(__name__)


class ResultShaper:
    """
    Builds the minimal FunctionCallResult returned to the model.

    The per-tool result model forbids extra fields, so a result can only ever
    carry `message` plus the identifiers the tool declares. Error results keep
    every declared identifier present as null.
    """

    def __init__(self, registry: ToolRegistry):
        self.registry = registry

    def shape(self, tool_name: str, outcome: ExecutionOutcome) -> FunctionCallResult:
        spec = self.registry.get(tool_name)
        result_model = self._result_model(spec)

        if isinstance(outcome, Success) and spec is not None:
            try:
                body = result_model.model_validate(spec.build_result(outcome.value))
            except PydanticValidationError:
                # 动作已执行，但结果不符合声明形状：不把多余字段交给模型
                logger.exception("Tool '%s' produced a result outside its declared shape.", tool_name)
                return self._unreportable(spec, result_model)
            except Exception:
                # build_result 本身出错（例如 handler 返回了意外的值）
                logger.exception("Could not build the result of tool '%s'.", tool_name)
                return self._unreportable(spec, result_model)
            return FunctionCallResult(status=ResultStatus.success, result=body)

        if isinstance(outcome, Failure):
            return self._error(result_model, self._failure_message(spec, outcome))

        # Success without a registered spec cannot be shaped safely
        logger.error("Success outcome for unregistered tool '%s'.", tool_name)
        return self._error(result_model, f"Tool '{tool_name}' does not exist.")

    def reject(self, tool_name: str, error: ToolArgumentError) -> FunctionCallResult:
        '''
        Shape a validation/transform rejection. error.message is already
        tool-scoped and names the offending fields.
        '''
        return self.error(tool_name, error.message)

    def error(self, tool_name: str, message: str) -> FunctionCallResult:
        return self._error(self._result_model(self.registry.get(tool_name)), message)

    def internal_error(self, tool_name: str) -> FunctionCallResult:
        return self.error(
            tool_name,
            "The call could not be completed because of an internal error. "
            "Do not repeat it; tell the user it needs checking.",
        )

    @staticmethod
    def _result_model(spec: Optional[ToolSpec]) -> Type[ToolResultBody]:
        return spec.result_model if spec is not None else MessageOnlyResult

    @staticmethod
    def _failure_message(spec: Optional[ToolSpec], failure: Failure) -> str:
        if spec is None:
            return failure.detail
        return f"{spec.display_name.capitalize()} failed: {failure.detail}"

    def _unreportable(self, spec: ToolSpec, result_model: Type[ToolResultBody]) -> FunctionCallResult:
        return self._error(
            result_model,
            f"{spec.display_name.capitalize()} ran, but its result could not be reported. "
            "Do not repeat the action; tell the user it needs checking.",
        )

    @staticmethod
    def _error(result_model: Type[ToolResultBody], message: str) -> FunctionCallResult:
        return FunctionCallResult(status=ResultStatus.error, result=result_model(message=message))
