"""
模块职责：请求级日志中间件。
- 每个请求一个 request_id（沿用客户端传来的 x-request-id，否则新生成）；
- request_start / request_end（耗时、状态码），异常时 request_error 后继续抛出；
- 响应头回带 x-request-id；/health 不打点。
"""
import time
import uuid

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from portal.infra.logger import emit, emit_error

QUIET_PATHS = {"/health"}


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        path = str(request.url.path)
        if path in QUIET_PATHS:
            return await call_next(request)

        rid = request.headers.get("x-request-id") or uuid.uuid4().hex
        start = time.perf_counter()
        emit("request_start", request_id=rid, method=request.method, path=path)
        try:
            response: Response = await call_next(request)
        except Exception as e:
            emit_error(
                "request_error",
                request_id=rid,
                method=request.method,
                path=path,
                error=repr(e),
                duration_ms=round((time.perf_counter() - start) * 1000, 2),
            )
            raise

        emit(
            "request_end",
            request_id=rid,
            method=request.method,
            path=path,
            status_code=response.status_code,
            duration_ms=round((time.perf_counter() - start) * 1000, 2),
        )
        response.headers["x-request-id"] = rid
        return response
