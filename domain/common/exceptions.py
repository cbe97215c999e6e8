"""领域层业务异常定义，供领域与基础设施使用。

核心（core）层仅负责全局映射与异常处理，尽量避免领域层反向依赖核心层。
"""
from __future__ import annotations

from typing import Optional
from shared.codes import BusinessCode


class BusinessException(Exception):
    """业务异常基类"""

    def __init__(
        self,
        code: int,
        message: str,
        error_type: str = "BusinessError",
        details: Optional[dict] = None,
        field: Optional[str] = None,
    ) -> None:
        self.code = code
        self.message = message
        self.error_type = error_type
        self.details = details
        self.field = field
        super().__init__(self.message)


class InvalidIdentifierException(BusinessException):
    def __init__(self, field: str, value: str):
        super().__init__(
            code=BusinessCode.INVALID_IDENTIFIER,
            message=f"Invalid {field.replace('_', ' ')}",
            error_type="InvalidIdentifier",
            details={"value": value},
            field=field,
        )


class RoomNotFoundException(BusinessException):
    def __init__(self, room_id: Optional[str] = None):
        details = {"room_id": room_id} if room_id else None
        super().__init__(
            code=BusinessCode.ROOM_NOT_FOUND,
            message="Room not found",
            error_type="RoomNotFound",
            details=details,
        )


class MessageNotFoundException(BusinessException):
    def __init__(self, message_id: Optional[str] = None):
        details = {"message_id": message_id} if message_id else None
        super().__init__(
            code=BusinessCode.MESSAGE_NOT_FOUND,
            message="Message not found",
            error_type="MessageNotFound",
            details=details,
        )


class StorageException(BusinessException):
    """存储层失败（数据库不可用、约束冲突等），对调用方表现为 500，不做重试。"""

    def __init__(self, operation: str, reason: Optional[str] = None):
        details = {"operation": operation}
        if reason:
            details["reason"] = reason
        super().__init__(
            code=BusinessCode.DATABASE_ERROR,
            message="something went wrong",
            error_type="StorageError",
            details=details,
        )


class SubscriptionUpgradeException(BusinessException):
    def __init__(self, reason: Optional[str] = None):
        super().__init__(
            code=BusinessCode.SUBSCRIPTION_FAILED,
            message="failed to upgrade to ws connection",
            error_type="SubscriptionUpgradeFailed",
            details={"reason": reason} if reason else None,
        )


class DomainValidationException(BusinessException):
    def __init__(
        self,
        message: str,
        *,
        field: str | None = None,
        details: dict | None = None,
    ):
        super().__init__(
            code=BusinessCode.PARAM_VALIDATION_ERROR,
            message=message,
            error_type="DomainValidationError",
            details=details,
            field=field,
        )
