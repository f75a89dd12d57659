"""
Campus Delivery: Payment screenshot upload (media CDN)

The CDN accepts a data URI or remote URL as ``file`` with an unsigned upload
preset and answers with the hosted ``secure_url``.
"""
import httpx

from campus_delivery.core.errors import ErrorType, NormalizedError, UpstreamError, upstream_error


class MediaUploader:
    def __init__(
        self,
        upload_url: str,
        upload_preset: str,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._upload_url = upload_url
        self._upload_preset = upload_preset
        self._client = httpx.AsyncClient(timeout=timeout, transport=transport)

    async def aclose(self) -> None:
        await self._client.aclose()

    async def upload(self, file: str) -> str:
        """Upload an image and return its public URL."""
        try:
            response = await self._client.post(
                self._upload_url,
                data={"file": file, "upload_preset": self._upload_preset},
            )
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise upstream_error(exc, "upload_screenshot")

        secure_url = response.json().get("secure_url")
        if not secure_url:
            raise UpstreamError(
                NormalizedError(type=ErrorType.SERVER, message="Media CDN did not return an image URL.")
            )
        return secure_url
