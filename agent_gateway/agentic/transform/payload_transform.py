# agent_gateway/agentic/transform/payload_transform.py
from dataclasses import dataclass
from typing import Any, Callable, Dict, Generic, List, Mapping, Optional, Type, TypeVar, Union

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from agent_gateway.agentic.exceptions import TransformError
from agent_gateway.agentic.schemas.dto.base_dto import InternalPayload

P = TypeVar("P", bound=InternalPayload)


class _Required:
    def __repr__(self) -> str:
        return "REQUIRED"


REQUIRED = _Required()


@dataclass(frozen=True)
class FieldRule:
    '''
    单个字段在外部 schema 与内部表示之间的映射规则

    参数	说明
    external	外部（agent 可见）字段名，camelCase
    internal	内部字段名，snake_case
    default	外部为 null/缺省时写入内部的值；REQUIRED 表示不允许为空
    nullable	内部也允许 None（状态由存在性表达的可选引用）
    export	to_external 时是否保留该字段；False = 直接丢弃，不改名
    convert	写入内部前的值转换（如枚举取值）
    '''
    external: str
    internal: str
    default: Any = REQUIRED
    nullable: bool = False
    export: bool = True
    convert: Optional[Callable[[Any], Any]] = None


class PayloadTransform(Generic[P]):
    """
    Declarative, bidirectional mapping between a tool's external argument
    schema and its internal payload model. All null-normalization and
    field-pruning rules for a tool live in its rule list.
    """

    def __init__(self, internal_model: Type[P], rules: List[FieldRule]):
        names = [r.internal for r in rules]
        missing = set(internal_model.model_fields) - set(names)
        if missing:
            raise ValueError(
                f"{internal_model.__name__} fields without a rule: {sorted(missing)}"
            )
        if len(set(names)) != len(names):
            raise ValueError(f"Duplicate internal field in rules for {internal_model.__name__}")
        self.internal_model = internal_model
        self.rules = list(rules)

    def to_internal(self, external: Union[BaseModel, Mapping[str, Any]]) -> P:
        '''
        Build the internal payload from a validated external model or from a
        mapping keyed by external field names (e.g. the output of to_external).
        Raises TransformError when a non-null internal field has no value and no default.
        '''
        if isinstance(external, BaseModel):
            source = external.model_dump(by_alias=True)
        else:
            source = dict(external)

        values: Dict[str, Any] = {}
        for rule in self.rules:
            value = source.get(rule.external)
            if value is None:
                if rule.nullable:
                    values[rule.internal] = None
                    continue
                if rule.default is REQUIRED:
                    raise TransformError(
                        f"'{rule.external}' must not be null.",
                        fields=[rule.external],
                    )
                value = rule.default() if callable(rule.default) else rule.default
            elif rule.convert is not None:
                value = rule.convert(value)
            values[rule.internal] = value

        try:
            return self.internal_model(**values)
        except PydanticValidationError as e:
            fields = sorted({
                self._external_name(str(err["loc"][0])) for err in e.errors() if err.get("loc")
            })
            raise TransformError(
                f"field(s) {', '.join(fields)} could not be normalized.",
                fields=fields,
            ) from e

    def to_external(self, internal: P) -> Dict[str, Any]:
        '''
        Project the internal payload onto the retained external contract for
        outbound calls to other systems. Non-exported fields are dropped.
        '''
        return {
            rule.external: getattr(internal, rule.internal)
            for rule in self.rules
            if rule.export
        }

    def exported_fields(self) -> List[str]:
        return [rule.external for rule in self.rules if rule.export]

    def _external_name(self, internal_name: str) -> str:
        for rule in self.rules:
            if rule.internal == internal_name:
                return rule.external
        return internal_name
