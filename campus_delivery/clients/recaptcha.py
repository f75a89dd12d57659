"""
Campus Delivery: reCAPTCHA token verification
"""
import logging

import httpx

from campus_delivery.core.errors import upstream_error

logger = logging.getLogger(__name__)


class RecaptchaVerifier:
    def __init__(
        self,
        verify_url: str,
        secret_key: str,
        timeout: float = 5.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._verify_url = verify_url
        self._secret_key = secret_key
        self._client = httpx.AsyncClient(timeout=timeout, transport=transport)

    async def aclose(self) -> None:
        await self._client.aclose()

    async def verify(self, token: str, remote_ip: str | None = None) -> bool:
        params = {"secret": self._secret_key, "response": token}
        if remote_ip:
            params["remoteip"] = remote_ip
        try:
            response = await self._client.post(self._verify_url, params=params)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise upstream_error(exc, "verify_recaptcha")

        body = response.json()
        if not body.get("success"):
            logger.info("reCAPTCHA rejected token: %s", body.get("error-codes"))
            return False
        return True
