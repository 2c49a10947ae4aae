"""
Image host client (Cloudinary upload API over httpx).

Uploads are signed with the API secret: SHA-1 over the sorted
``key=value`` parameters followed by the secret.
"""
import hashlib
import time
from typing import Dict, Optional

import httpx

from aaghaaz.core.config import settings
from aaghaaz.core.exceptions import ImageUploadError
from aaghaaz.core.logging_config import logger

CLOUDINARY_UPLOAD_URL = "https://api.cloudinary.com/v1_1/{cloud_name}/image/upload"


def sign_params(params: Dict[str, str], api_secret: str) -> str:
    to_sign = "&".join(f"{k}={params[k]}" for k in sorted(params) if params[k] not in (None, ""))
    return hashlib.sha1(f"{to_sign}{api_secret}".encode("utf-8")).hexdigest()


class ImageHost:
    def __init__(
        self,
        cloud_name: Optional[str] = None,
        api_key: Optional[str] = None,
        api_secret: Optional[str] = None,
        folder: Optional[str] = None,
        timeout: Optional[int] = None,
    ):
        self.cloud_name = cloud_name if cloud_name is not None else settings.CLOUDINARY_CLOUD_NAME
        self.api_key = api_key if api_key is not None else settings.CLOUDINARY_API_KEY
        self.api_secret = api_secret if api_secret is not None else settings.CLOUDINARY_API_SECRET
        self.folder = folder if folder is not None else settings.CLOUDINARY_FOLDER
        self.timeout = timeout if timeout is not None else settings.IMAGE_UPLOAD_TIMEOUT

    @property
    def is_configured(self) -> bool:
        return bool(self.cloud_name and self.api_key and self.api_secret)

    async def upload(self, content: bytes, filename: str, content_type: str) -> str:
        """Upload an image and return its secure URL"""
        if not self.is_configured:
            raise ImageUploadError("Image hosting is not configured")

        params = {"folder": self.folder, "timestamp": str(int(time.time()))}
        data = dict(params)
        data["api_key"] = self.api_key
        data["signature"] = sign_params(params, self.api_secret)

        url = CLOUDINARY_UPLOAD_URL.format(cloud_name=self.cloud_name)
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(
                    url,
                    data=data,
                    files={"file": (filename, content, content_type)},
                )
        except httpx.HTTPError as e:
            logger.error(f"[ImageHost] Upload request failed: {type(e).__name__}")
            raise ImageUploadError()

        if response.status_code != 200:
            logger.error(f"[ImageHost] Upload rejected with status {response.status_code}")
            raise ImageUploadError()

        secure_url = response.json().get("secure_url")
        if not secure_url:
            raise ImageUploadError()
        logger.info(f"[ImageHost] Uploaded {filename}")
        return secure_url


image_host = ImageHost()
