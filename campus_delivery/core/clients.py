"""
Campus Delivery: Downstream client container

All network clients are built once per application in the lifespan and kept on
``app.state.clients``. Routes receive them through the dependencies below.
"""
from dataclasses import dataclass

import redis
import redis.asyncio as aioredis
from fastapi import Request

from campus_delivery.clients.backend import BackendClient
from campus_delivery.clients.media import MediaUploader
from campus_delivery.clients.recaptcha import RecaptchaVerifier
from campus_delivery.clients.sheets import SheetsClient
from campus_delivery.core.config import Settings


@dataclass
class AppClients:
    redis: aioredis.Redis
    storage_redis: redis.Redis
    backend: BackendClient
    sheets: SheetsClient
    media: MediaUploader
    recaptcha: RecaptchaVerifier

    @classmethod
    def from_settings(cls, settings: Settings) -> "AppClients":
        return cls(
            redis=aioredis.from_url(
                settings.redis_url,
                decode_responses=True,
                socket_connect_timeout=settings.HEALTH_CHECK_TIMEOUT,
            ),
            storage_redis=redis.Redis.from_url(
                settings.redis_url,
                decode_responses=True,
                socket_connect_timeout=settings.HEALTH_CHECK_TIMEOUT,
            ),
            backend=BackendClient(settings.BACKEND_URL, timeout=settings.HTTP_TIMEOUT_SECONDS),
            sheets=SheetsClient(settings.SHEETS_BACKEND_URL, timeout=settings.HTTP_TIMEOUT_SECONDS),
            media=MediaUploader(settings.MEDIA_UPLOAD_URL, settings.MEDIA_UPLOAD_PRESET),
            recaptcha=RecaptchaVerifier(settings.RECAPTCHA_VERIFY_URL, settings.RECAPTCHA_SECRET_KEY),
        )

    async def aclose(self) -> None:
        await self.backend.aclose()
        await self.sheets.aclose()
        await self.media.aclose()
        await self.recaptcha.aclose()
        await self.redis.aclose()
        self.storage_redis.close()


def get_clients(request: Request) -> AppClients:
    return request.app.state.clients


def get_backend(request: Request) -> BackendClient:
    return request.app.state.clients.backend
