from enum import Enum

class ErrorType(str, Enum):
    '''
    工具调用管道中可能出现的问题的结构化分类与表达

    参数	说明
    MALFORMED_INPUT:toolcall 参数无法反序列化（非 JSON 或非对象）。管道内恢复，返回 error 结果，不进入 Dispatcher。
    CONSTRAINT_VIOLATION:参数可解析，但违反 schema 约束（缺字段、空白、枚举不在激活集合中）。管道内恢复，不进入 Dispatcher。
    UNKNOWN_TOOL:没有注册该工具。本次调用失败，会话继续；仍写审计。
    HANDLER_FAILURE:后端 handler 抛出未分类异常。对模型只暴露通用说明；仍写审计。
    BUSINESS_RULE_ERROR:handler 判定操作违反业务规则（如引用的订单不存在）。
    DATABASE_ERROR:handler 内数据库操作失败。
    AUDIT_WRITE_FAILURE:审计记录持久化失败。不暴露给模型，必须告警。
    PROMOTION_FAILURE:上下文合并失败。降级为"不携带上下文"，不影响本轮。
    '''
    # 输入问题
    MALFORMED_INPUT = "MALFORMED_INPUT"
    CONSTRAINT_VIOLATION = "CONSTRAINT_VIOLATION"

    # 调度/执行问题
    UNKNOWN_TOOL = "UNKNOWN_TOOL"
    HANDLER_FAILURE = "HANDLER_FAILURE"
    BUSINESS_RULE_ERROR = "BUSINESS_RULE_ERROR"
    DATABASE_ERROR = "DATABASE_ERROR"

    # 旁路副作用问题
    AUDIT_WRITE_FAILURE = "AUDIT_WRITE_FAILURE"
    PROMOTION_FAILURE = "PROMOTION_FAILURE"
