# agent_gateway/agentic/exceptions.py
from typing import List, Optional

from agent_gateway.agentic.schemas.error_type import ErrorType


class ToolArgumentError(Exception):
    '''
    Raised by the argument validator. The message is model-facing:
    it names the tool and the offending fields, never internals.
    '''
    error_type: ErrorType = ErrorType.CONSTRAINT_VIOLATION

    def __init__(self, message: str, fields: Optional[List[str]] = None):
        super().__init__(message)
        self.message = message
        self.fields = fields or []


class MalformedInput(ToolArgumentError):
    error_type = ErrorType.MALFORMED_INPUT


class ConstraintViolation(ToolArgumentError):
    error_type = ErrorType.CONSTRAINT_VIOLATION


class TransformError(ToolArgumentError):
    '''A validated external value cannot satisfy an internal non-null field.'''
    error_type = ErrorType.CONSTRAINT_VIOLATION


class ToolHandlerError(Exception):
    '''
    Typed failure raised by a backend handler.
    detail must be safe to show to the model (no stack, no SQL).
    '''
    def __init__(self, detail: str, kind: ErrorType = ErrorType.HANDLER_FAILURE):
        super().__init__(detail)
        self.detail = detail
        self.kind = kind


class AuditWriteError(Exception):
    pass


class PromotionError(Exception):
    pass


class RegistryFrozenError(RuntimeError):
    pass
