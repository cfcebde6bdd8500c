# agent_gateway/agentic/validation/argument_validator.py
import json
from typing import List, Type, TypeVar

from pydantic import ValidationError as PydanticValidationError

from agent_gateway.agentic.exceptions import ConstraintViolation, MalformedInput
from agent_gateway.agentic.schemas.dto.base_dto import ExternalArgs
from agent_gateway.logger import get_logger

logger = get_logger(__name__)
A = TypeVar("A", bound=ExternalArgs)


def _tool_label(tool_name: str) -> str:
    return tool_name.replace("_", " ")


class ArgumentValidator:
    """
    Parses raw tool-call arguments against a tool's external schema.
    Side-effect free: never touches storage or the dispatcher.
    """

    def validate(self, tool_name: str, raw_arguments: str, schema: Type[A]) -> A:
        '''
        Deserialize and constraint-check raw_arguments.
        steps:
        1) JSON decode; non-JSON or non-object -> MalformedInput
        2) pydantic validation; any violation -> ConstraintViolation listing the fields
        param:
        tool_name: str - used only to scope the diagnostic message
        raw_arguments: str - serialized arguments from the model
        schema: Type[ExternalArgs] - the tool's external argument schema
        '''
        prefix = f"Invalid parameters for {_tool_label(tool_name)}"
        if not raw_arguments or not raw_arguments.strip():
            raise MalformedInput(f"{prefix}: arguments are empty; send a JSON object.")
        try:
            data = json.loads(raw_arguments)
        except (json.JSONDecodeError, TypeError) as e:
            logger.info("Malformed arguments for tool '%s': %s", tool_name, e)
            raise MalformedInput(f"{prefix}: arguments are not valid JSON.") from e

        if not isinstance(data, dict):
            raise MalformedInput(f"{prefix}: arguments must be a JSON object.")

        try:
            return schema.model_validate(data)
        except PydanticValidationError as e:
            missing, extra, invalid = self._classify(e)
            parts = []
            if missing:
                parts.append(f"missing required field(s): {', '.join(missing)}")
            if extra:
                parts.append(f"unexpected field(s): {', '.join(extra)}")
            if invalid:
                parts.append(f"invalid value for field(s): {', '.join(invalid)}")
            fields = missing + extra + invalid
            logger.info("Constraint violation for tool '%s': %s", tool_name, fields)
            raise ConstraintViolation(f"{prefix}: {'; '.join(parts)}.", fields=fields) from e

    @staticmethod
    def _classify(error: PydanticValidationError):
        missing: List[str] = []
        extra: List[str] = []
        invalid: List[str] = []
        for err in error.errors():
            loc = err.get("loc") or ("<root>",)
            name = str(loc[0])
            if err["type"] == "missing":
                bucket = missing
            elif err["type"] == "extra_forbidden":
                bucket = extra
            else:
                bucket = invalid
            if name not in bucket:
                bucket.append(name)
        return missing, extra, invalid
