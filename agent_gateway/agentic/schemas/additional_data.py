from typing import Any, Dict, List, Optional

from pydantic import ConfigDict, Field
from pydantic.alias_generators import to_camel

from agent_gateway.agentic.schemas.dto.base_dto import BaseDTO
from agent_gateway.agentic.schemas.dto.order_report_dto import OrderReportDTO


class _StrictDTO(BaseDTO):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        extra="forbid",
    )


class FileAnnotation(_StrictDTO):
    file_id: str
    label: str


class InputContext(_StrictDTO):
    '''上游调用方提供的输入子集（用户附件、标识等）；管道只读不写'''
    attachments: List[str] = Field(default_factory=list)
    identifiers: Dict[str, str] = Field(default_factory=dict)


class DerivedContext(_StrictDTO):
    '''
    管道在工具执行后写入的派生子集。字段按部署固定：

    参数	说明
    saved_order_request_id	save_order_draft 新建的订单 id
    referenced_order_request_id	save_order_draft 关联的已有订单 id
    order_report	summarize_order_requests 生成的报表对象
    file_annotations	文件标注列表
    工作记忆、工具中间结果不允许出现在这里
    '''
    saved_order_request_id: Optional[int] = None
    referenced_order_request_id: Optional[int] = None
    order_report: Optional[OrderReportDTO] = None
    file_annotations: List[FileAnnotation] = Field(default_factory=list)

    def merged(self, updates: Dict[str, Any]) -> "DerivedContext":
        '''
        Return a new DerivedContext with updates (keyed by wire name) applied.
        Unknown keys raise pydantic.ValidationError.
        '''
        current = self.model_dump(by_alias=True, exclude_none=True)
        current.update(updates)
        return DerivedContext.model_validate(current)


class AdditionalData(_StrictDTO):
    input: InputContext = Field(default_factory=InputContext)
    derived: DerivedContext = Field(default_factory=DerivedContext)

    @classmethod
    def from_storage(cls, raw: Optional[Dict[str, Any]]) -> "AdditionalData":
        return cls.model_validate(raw or {})

    def to_storage(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json", exclude_none=True)
