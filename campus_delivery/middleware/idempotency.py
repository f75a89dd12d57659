"""
Campus Delivery: Idempotency Key Middleware

A checkout retried with the same Idempotency-Key must not write a second
ledger row:
  - Cache hit  → return cached response immediately (no business logic)
  - Cache miss → execute handler, store response in Redis for 24h
"""
import json
import logging

import redis
from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger(__name__)

IDEMPOTENCY_PREFIX = "idempotent:"
IDEMPOTENCY_METHODS = {"POST"}
IDEMPOTENCY_PATHS = {"/checkout", "/checkout/"}
ANONYMOUS_CLIENT = "anonymous"


class IdempotencyMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, settings):
        super().__init__(app)
        self.settings = settings

    async def dispatch(self, request: Request, call_next) -> Response:
        if request.method not in IDEMPOTENCY_METHODS:
            return await call_next(request)

        if request.url.path not in IDEMPOTENCY_PATHS:
            return await call_next(request)

        idem_key = request.headers.get("Idempotency-Key")
        if not idem_key:
            return await call_next(request)

        # replay is scoped per client
        client_id = request.headers.get("X-Client-Id", "").strip() or ANONYMOUS_CLIENT
        store = request.app.state.clients.redis
        cache_key = f"{IDEMPOTENCY_PREFIX}{client_id}:{idem_key}"

        try:
            cached = await store.get(cache_key)
        except redis.RedisError as exc:
            logger.warning("Idempotency lookup failed, processing request: %s", exc)
            return await call_next(request)

        if cached:
            data = json.loads(cached)
            return JSONResponse(
                content=data["body"],
                status_code=data["status_code"],
                headers={"X-Idempotency-Replay": "true"},
            )

        response = await call_next(request)

        body_bytes = b""
        async for chunk in response.body_iterator:
            body_bytes += chunk

        try:
            body = json.loads(body_bytes)
        except ValueError:
            body = body_bytes.decode("utf-8", errors="replace")

        # Only completed checkouts are pinned; failures may be retried with the same key
        if response.status_code < 300:
            try:
                await store.setex(
                    cache_key,
                    self.settings.IDEMPOTENCY_KEY_TTL_SECONDS,
                    json.dumps({"body": body, "status_code": response.status_code}),
                )
            except redis.RedisError as exc:
                logger.warning("Idempotency store failed for %s: %s", idem_key, exc)

        return Response(
            content=body_bytes,
            status_code=response.status_code,
            media_type=response.media_type,
            headers=dict(response.headers),
        )
