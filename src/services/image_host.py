"""Avatar hosting on Cloudinary via its REST upload API."""

import hashlib
import logging
import time
from dataclasses import dataclass

import httpx

from src.config import Settings, get_settings
from src.exceptions import UpstreamServiceError
from src.models.state import Avatar

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ImageUpload:
    """An image received from a client, ready to be sent to the host."""

    filename: str
    content: bytes
    content_type: str | None = None


class ImageHostService:
    """Uploads and destroys images keyed by a public id."""

    def __init__(self, settings: Settings | None = None) -> None:
        self.settings = settings or get_settings()
        self.base_url = f"https://api.cloudinary.com/v1_1/{self.settings.cloudinary_cloud_name}"
        self.timeout = 60.0

    @property
    def is_configured(self) -> bool:
        return bool(
            self.settings.cloudinary_cloud_name
            and self.settings.cloudinary_api_key
            and self.settings.cloudinary_api_secret
        )

    def sign(self, params: dict[str, str]) -> str:
        """Cloudinary signature: sha1 of sorted ``k=v`` pairs plus the API secret."""
        to_sign = "&".join(f"{key}={value}" for key, value in sorted(params.items()))
        return hashlib.sha1(  # noqa: S324 - algorithm fixed by Cloudinary
            f"{to_sign}{self.settings.cloudinary_api_secret}".encode()
        ).hexdigest()

    def _signed_params(self, params: dict[str, str]) -> dict[str, str]:
        params = {**params, "timestamp": str(int(time.time()))}
        return {
            **params,
            "signature": self.sign(params),
            "api_key": self.settings.cloudinary_api_key or "",
        }

    async def _post(self, path: str, data: dict[str, str], files: dict | None = None) -> dict:
        if not self.is_configured:
            logger.error("Cloudinary credentials not configured")
            raise UpstreamServiceError()
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(f"{self.base_url}{path}", data=data, files=files)
                response.raise_for_status()
                return response.json()
        except httpx.HTTPError as e:
            logger.error(f"HTTP error calling Cloudinary {path}: {e}")
            raise UpstreamServiceError() from e

    async def upload(self, image: ImageUpload) -> Avatar:
        """Upload an image into the configured folder."""
        data = self._signed_params({"folder": self.settings.cloudinary_folder})
        content_type = image.content_type or "application/octet-stream"
        files = {"file": (image.filename, image.content, content_type)}
        payload = await self._post("/image/upload", data=data, files=files)
        logger.info(f"Uploaded image {payload['public_id']}")
        return Avatar(public_id=payload["public_id"], url=payload["secure_url"])

    async def destroy(self, public_id: str) -> None:
        """Delete a previously uploaded image."""
        data = self._signed_params({"public_id": public_id})
        await self._post("/image/destroy", data=data)
        logger.info(f"Destroyed image {public_id}")


def get_image_host() -> ImageHostService:
    """Get an image host service instance."""
    return ImageHostService()
