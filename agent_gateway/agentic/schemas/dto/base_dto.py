from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class BaseDTO(BaseModel):
    '''
    对外（agent 可见）结构的基类：snake_case 字段，camelCase 线上名称
    '''
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )


class ExternalArgs(BaseDTO):
    '''
    工具入参 schema 的基类。
    Optional 字段不给默认值 = 必须出现但可以为 null（结构化输出不允许省略字段）
    '''
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        extra="forbid",
        str_strip_whitespace=True,
    )


class InternalPayload(BaseModel):
    '''
    内部存储/业务表示的基类：不可变，字段非空约束比外部更严格
    '''
    model_config = ConfigDict(frozen=True, extra="forbid")
