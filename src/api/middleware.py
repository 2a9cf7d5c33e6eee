"""
Request logging middleware (pure ASGI, so background tasks are unaffected).
"""

import logging
import time

logger = logging.getLogger("api.requests")


class RequestLoggingMiddleware:
    def __init__(self, app):
        self.app = app

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        start_time = time.perf_counter()
        status_code = 500

        async def send_wrapper(message):
            nonlocal status_code
            if message["type"] == "http.response.start":
                status_code = message["status"]
            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        finally:
            duration_ms = (time.perf_counter() - start_time) * 1000
            logger.info(
                f"{scope.get('method', 'UNKNOWN')} {scope.get('path', '/')} {status_code} {duration_ms:.1f}ms"
            )
