# agent_gateway/db/enums.py
import enum
from typing import Union

# =========
# 📦 OrderRequest related enums
# =========
# 全量枚举：包含所有曾经落库的值（含已废弃值），只增不删，保证历史数据可读
class OrderStatus(enum.Enum):
    draft = "draft"
    submitted = "submitted"
    approved = "approved"
    cancelled = "cancelled"
    pending_review = "pending_review"   # 已废弃：被 submitted 取代，仅用于读取历史数据


class UnitOfMeasure(enum.Enum):
    EA = "EA"      # each
    BX = "BX"      # box
    CS = "CS"      # case
    PK = "PK"      # pack
    DZ = "DZ"      # 已废弃：dozen，新写入请用 EA + quantity


class Confidence(enum.Enum):
    high = "high"
    medium = "medium"
    low = "low"


# 激活子集：新写入只允许这些值
ACTIVE_ORDER_STATUSES = frozenset({
    OrderStatus.draft,
    OrderStatus.submitted,
    OrderStatus.approved,
    OrderStatus.cancelled,
})

ACTIVE_UNITS_OF_MEASURE = frozenset({
    UnitOfMeasure.EA,
    UnitOfMeasure.BX,
    UnitOfMeasure.CS,
    UnitOfMeasure.PK,
})

ACTIVE_CONFIDENCES = frozenset(Confidence)

_ACTIVE_SETS = {
    OrderStatus: ACTIVE_ORDER_STATUSES,
    UnitOfMeasure: ACTIVE_UNITS_OF_MEASURE,
    Confidence: ACTIVE_CONFIDENCES,
}


def is_active(value: enum.Enum) -> bool:
    '''
    One-way inclusion check from the full value set into its active subset.
    param:
    value: enum.Enum - a member of OrderStatus / UnitOfMeasure / Confidence
    '''
    active = _ACTIVE_SETS.get(type(value))
    if active is None:
        raise TypeError(f"No active subset declared for {type(value).__name__}")
    return value in active


def parse_active(enum_cls: type, raw: Union[str, enum.Enum]) -> enum.Enum:
    '''
    Resolve a raw wire value to an active member of enum_cls.
    Raises ValueError for unknown values and for deprecated (inactive) values.
    '''
    member = raw if isinstance(raw, enum_cls) else enum_cls(raw)
    if not is_active(member):
        allowed = sorted(m.value for m in _ACTIVE_SETS[enum_cls])
        raise ValueError(f"'{member.value}' is no longer accepted; allowed values: {allowed}")
    return member


def active_values(enum_cls: type) -> list:
    return sorted(m.value for m in _ACTIVE_SETS[enum_cls])
