"""
CreditFlow 错误处理系统
遵循 RFC7807 Problem Details 标准
"""
from typing import Any, List, Optional

from fastapi import Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field


class ProblemDetail(BaseModel):
    """RFC7807 Problem Details 模型"""
    model_config = ConfigDict(
        extra="allow",
        json_schema_extra={
            "example": {
                "type": "about:blank",
                "title": "Insufficient Credit",
                "status": 400,
                "detail": "Insufficient credit balance. Customer 4f1c... has $10.00 but needs $59.97",
                "code": "INSUFFICIENT_CREDIT"
            }
        },
    )

    type: str = Field(default="about:blank")
    title: str
    status: int
    detail: Optional[str] = None
    instance: Optional[str] = None
    code: Optional[str] = None  # 业务错误码


class CreditFlowException(Exception):
    """CreditFlow 基础异常类"""

    def __init__(
        self,
        status: int,
        code: str,
        title: str,
        detail: Optional[str] = None,
        **kwargs: Any
    ):
        self.status = status
        self.code = code
        self.title = title
        self.detail = detail
        self.extra = kwargs
        super().__init__(detail or title)

    def to_problem_detail(self, instance: Optional[str] = None) -> ProblemDetail:
        """转换为 Problem Details 格式"""
        return ProblemDetail(
            type="about:blank",
            title=self.title,
            status=self.status,
            detail=self.detail,
            instance=instance,
            code=self.code,
            **self.extra
        )

    def to_response(self, request: Optional[Request] = None) -> JSONResponse:
        """转换为 JSON 响应"""
        instance = str(request.url) if request else None
        problem = self.to_problem_detail(instance)

        return JSONResponse(
            status_code=self.status,
            content={
                "ok": False,
                "error": problem.model_dump(exclude_none=True)
            }
        )


# 预定义错误类
class ValidationError(CreditFlowException):
    """422 输入校验失败（在产生任何副作用之前抛出）"""
    def __init__(self, detail: str, errors: Optional[List[str]] = None):
        self.errors = list(errors or [])
        super().__init__(
            status=422,
            code="VALIDATION_ERROR",
            title="Validation Failed",
            detail=detail,
            errors=self.errors
        )


class NotFoundError(CreditFlowException):
    """404 未找到"""
    def __init__(self, resource: str, identifier: str):
        self.resource = resource
        self.identifier = identifier
        super().__init__(
            status=404,
            code=f"{_to_code(resource)}_NOT_FOUND",
            title="Not Found",
            detail=f"{resource} with identifier {identifier} not found"
        )


class InsufficientCreditError(CreditFlowException):
    """400 余额不足（预检查或事务内的权威检查）"""
    def __init__(self, customer_id: str, required: Any, available: Any):
        self.customer_id = customer_id
        self.required = required
        self.available = available
        super().__init__(
            status=400,
            code="INSUFFICIENT_CREDIT",
            title="Insufficient Credit",
            detail=(
                f"Insufficient credit balance. Customer {customer_id} "
                f"has {available} but needs {required}"
            )
        )


class ConcurrencyError(CreditFlowException):
    """409 乐观锁冲突，由调用方决定是否重试"""
    def __init__(self, resource: str, identifier: str):
        self.resource = resource
        self.identifier = identifier
        super().__init__(
            status=409,
            code="CONCURRENT_MODIFICATION",
            title="Conflict",
            detail=(
                f"Concurrent modification detected for {resource} {identifier}. "
                "Please retry the operation."
            )
        )


class ShipmentFailedError(CreditFlowException):
    """502 发货服务调用失败，必须回滚整个事务"""
    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(
            status=502,
            code="SHIPMENT_FAILED",
            title="Shipment Failed",
            detail=f"Shipment creation failed: {reason}"
        )


class DomainRuleError(CreditFlowException):
    """422 实体不变量被破坏（负金额、超额退款、非法状态迁移等）"""
    def __init__(self, detail: str):
        super().__init__(
            status=422,
            code="BUSINESS_RULE_VIOLATION",
            title="Business Rule Violated",
            detail=detail
        )


class InternalServerError(CreditFlowException):
    """500 内部错误"""
    def __init__(self, code: str = "INTERNAL_ERROR", detail: str = "An internal error occurred"):
        super().__init__(
            status=500,
            code=code,
            title="Internal Server Error",
            detail=detail
        )


class ServiceUnavailableError(CreditFlowException):
    """503 外部服务不可用"""
    def __init__(self, code: str = "SERVICE_UNAVAILABLE", detail: str = "Service temporarily unavailable"):
        super().__init__(
            status=503,
            code=code,
            title="Service Unavailable",
            detail=detail
        )


def _to_code(resource: str) -> str:
    """CreditBalance -> CREDIT_BALANCE"""
    chars = []
    for i, ch in enumerate(resource.replace(" ", "_")):
        if ch.isupper() and i > 0 and resource[i - 1].islower():
            chars.append("_")
        chars.append(ch.upper())
    return "".join(chars)
