"""Media hosting HTTP client.

Talks to a Cloudinary-compatible REST API to upload product images and
delete them by public id.
"""

import hashlib
import time
from dataclasses import dataclass
from typing import Any

import httpx
import structlog

from app.domain.exceptions import MediaServiceError
from app.infrastructure.config import settings

logger = structlog.get_logger()

# Admin API accepts at most this many public ids per bulk delete call.
BULK_DELETE_CHUNK = 100


@dataclass
class UploadedImage:
    """Image stored by the media service."""

    url: str
    public_id: str

    @classmethod
    def from_api_response(cls, data: dict[str, Any]) -> "UploadedImage":
        """Create from upload API response.

        Args:
            data: API response data.

        Returns:
            UploadedImage instance.
        """
        return cls(
            url=data.get("secure_url") or data["url"],
            public_id=data["public_id"],
        )


@dataclass
class ImageFile:
    """Binary image received from a client."""

    filename: str
    content_type: str
    content: bytes


def sign_params(params: dict[str, Any], api_secret: str) -> str:
    """Sign request parameters the way the media API expects.

    Parameters are sorted by key, joined as ``k=v`` pairs with ``&``,
    suffixed with the API secret and hashed with SHA-1.

    Args:
        params: Parameters to sign (without file, api_key or signature).
        api_secret: Account API secret.

    Returns:
        Hex digest signature.
    """
    payload = "&".join(
        f"{key}={value}" for key, value in sorted(params.items()) if value not in (None, "")
    )
    return hashlib.sha1(f"{payload}{api_secret}".encode()).hexdigest()


class MediaClient:
    """HTTP client for the media hosting service.

    Uploads are signed with the account secret; bulk deletion uses the
    admin API with basic auth.
    """

    def __init__(
        self,
        cloud_name: str,
        api_key: str,
        api_secret: str,
        base_url: str = "https://api.cloudinary.com/v1_1",
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize media client.

        Args:
            cloud_name: Account (cloud) name.
            api_key: API key.
            api_secret: API secret used for signing.
            base_url: API root URL.
            timeout: Request timeout in seconds.
            transport: Optional custom transport (used in tests).
        """
        self.cloud_name = cloud_name
        self.api_key = api_key
        self.api_secret = api_secret
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=f"{self.base_url}/{self.cloud_name}",
                timeout=self.timeout,
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    def _signed(self, params: dict[str, Any]) -> dict[str, Any]:
        signed = dict(params)
        signed["timestamp"] = int(time.time())
        signed["signature"] = sign_params(signed, self.api_secret)
        signed["api_key"] = self.api_key
        return signed

    async def upload_image(
        self,
        image: ImageFile,
        folder: str | None = None,
    ) -> UploadedImage:
        """Upload a single image.

        Args:
            image: Image to upload.
            folder: Destination folder on the media service.

        Returns:
            The hosted image reference.

        Raises:
            MediaServiceError: On transport or API error.
        """
        data = self._signed({"folder": folder} if folder else {})
        files = {"file": (image.filename, image.content, image.content_type)}

        try:
            client = await self._get_client()
            response = await client.post("/image/upload", data=data, files=files)
        except httpx.HTTPError as e:
            raise MediaServiceError(f"Upload request failed: {e}") from e

        if response.status_code != 200:
            raise MediaServiceError(
                f"Upload failed: {response.text}",
                status_code=response.status_code,
            )

        uploaded = UploadedImage.from_api_response(response.json())
        logger.info(
            "Image uploaded",
            public_id=uploaded.public_id,
            folder=folder,
            size=len(image.content),
        )
        return uploaded

    async def upload_product_images(self, images: list[ImageFile]) -> list[UploadedImage]:
        """Upload product images into the products folder, in order."""
        return [
            await self.upload_image(image, folder=settings.media_products_folder)
            for image in images
        ]

    async def upload_size_chart(self, image: ImageFile) -> UploadedImage:
        """Upload a size chart image into the size chart folder."""
        return await self.upload_image(image, folder=settings.media_size_chart_folder)

    async def delete_image(self, public_id: str) -> None:
        """Delete a single image.

        A "not found" answer counts as success so repeated deletes are
        harmless.

        Args:
            public_id: Media handle of the image.

        Raises:
            MediaServiceError: On transport or API error.
        """
        data = self._signed({"public_id": public_id})

        try:
            client = await self._get_client()
            response = await client.post("/image/destroy", data=data)
        except httpx.HTTPError as e:
            raise MediaServiceError(
                f"Delete request failed: {e}", public_id=public_id
            ) from e

        if response.status_code != 200:
            raise MediaServiceError(
                f"Delete failed: {response.text}",
                status_code=response.status_code,
                public_id=public_id,
            )

        result = response.json().get("result")
        if result not in ("ok", "not found"):
            raise MediaServiceError(
                f"Delete rejected: {result}",
                status_code=response.status_code,
                public_id=public_id,
            )

        logger.info("Image deleted", public_id=public_id, result=result)

    async def delete_images(self, public_ids: list[str]) -> dict[str, str]:
        """Delete many images through the admin API.

        Args:
            public_ids: Media handles to delete.

        Returns:
            Mapping of public id to the provider's per-id result.

        Raises:
            MediaServiceError: On transport or API error.
        """
        results: dict[str, str] = {}
        ids = [pid for pid in public_ids if pid]
        if not ids:
            return results

        client = await self._get_client()
        for start in range(0, len(ids), BULK_DELETE_CHUNK):
            chunk = ids[start : start + BULK_DELETE_CHUNK]
            try:
                response = await client.delete(
                    "/resources/image/upload",
                    params=[("public_ids[]", pid) for pid in chunk],
                    auth=(self.api_key, self.api_secret),
                )
            except httpx.HTTPError as e:
                raise MediaServiceError(f"Bulk delete request failed: {e}") from e

            if response.status_code != 200:
                raise MediaServiceError(
                    f"Bulk delete failed: {response.text}",
                    status_code=response.status_code,
                )

            results.update(response.json().get("deleted", {}))

        logger.info("Images deleted", count=len(ids))
        return results


# Global client instance
_media_client: MediaClient | None = None


def get_media_client() -> MediaClient:
    """Get the media client singleton.

    Returns:
        MediaClient instance.
    """
    global _media_client
    if _media_client is None:
        _media_client = MediaClient(
            cloud_name=settings.media_cloud_name,
            api_key=settings.media_api_key,
            api_secret=settings.media_api_secret,
            base_url=settings.media_base_url,
            timeout=settings.media_timeout,
        )
    return _media_client


async def close_media_client() -> None:
    """Close and drop the media client singleton."""
    global _media_client
    if _media_client is not None:
        await _media_client.close()
        _media_client = None
