"""
Request ID 中间件
为 HTTP 请求与 WebSocket 连接生成或透传追踪ID，并通过 contextvars 传递给日志系统

Implemented as plain ASGI middleware (not BaseHTTPMiddleware) so that the
same context is bound for long-lived `/subscribe` WebSocket sessions.
"""
import uuid
from contextvars import ContextVar
from typing import Optional

import structlog
from starlette.datastructures import Headers, MutableHeaders
from starlette.types import ASGIApp, Message, Receive, Scope, Send


request_id_var: ContextVar[Optional[str]] = ContextVar("request_id", default=None)


class RequestIDMiddleware:
    """
    Request ID 追踪中间件

    功能：
    1. 从请求头获取或生成新的 request_id
    2. 将 request_id 存入 contextvars / structlog 上下文
    3. 在 HTTP 响应头中返回 request_id
    """

    HEADER_NAME = "X-Request-ID"

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] not in ("http", "websocket"):
            await self.app(scope, receive, send)
            return

        headers = Headers(scope=scope)
        request_id = headers.get(self.HEADER_NAME) or str(uuid.uuid4())
        client_ip = self._get_client_ip(scope, headers)

        scope.setdefault("state", {})
        scope["state"]["request_id"] = request_id
        scope["state"]["client_ip"] = client_ip

        request_id_var.set(request_id)

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            client_ip=client_ip,
            method=scope.get("method", "WS"),
            path=scope.get("path"),
        )

        if scope["type"] == "websocket":
            await self.app(scope, receive, send)
            return

        async def send_wrapper(message: Message) -> None:
            if message["type"] == "http.response.start":
                MutableHeaders(scope=message)[self.HEADER_NAME] = request_id
            await send(message)

        await self.app(scope, receive, send_wrapper)

    @staticmethod
    def _get_client_ip(scope: Scope, headers: Headers) -> str:
        """获取客户端真实IP（考虑代理的情况）"""
        x_forwarded_for = headers.get("X-Forwarded-For")
        if x_forwarded_for:
            return x_forwarded_for.split(",")[0].strip()
        real_ip = headers.get("X-Real-IP")
        if real_ip:
            return real_ip
        client = scope.get("client")
        return client[0] if client else "unknown"


def get_request_id() -> Optional[str]:
    """获取当前请求的 request_id，不在请求上下文中则返回 None"""
    return request_id_var.get()

