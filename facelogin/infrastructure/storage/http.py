"""Reference image store served over HTTP(S)."""
import asyncio
from typing import Optional
from urllib.parse import urljoin

import requests

from facelogin.core.config import settings
from facelogin.core.exceptions import ImageFetchError
from facelogin.core.logging import get_logger
from facelogin.domain.interfaces.storage.image_store import ReferenceImageStore

logger = get_logger(__name__)


class HttpImageStore(ReferenceImageStore):
    """Fetches reference images from ``base_url + ref``."""

    def __init__(
        self,
        base_url: str,
        timeout: Optional[float] = None,
        session: Optional[requests.Session] = None
    ) -> None:
        self.base_url = base_url if base_url.endswith("/") else f"{base_url}/"
        self.timeout = timeout or settings.HTTP_TIMEOUT_SECONDS
        self.session = session or requests.Session()

    def url_for(self, ref: str) -> str:
        return urljoin(self.base_url, ref.lstrip("/"))

    async def fetch(self, ref: str) -> bytes:
        url = self.url_for(ref)
        try:
            response = await asyncio.to_thread(self.session.get, url, timeout=self.timeout)
            response.raise_for_status()
        except requests.HTTPError as e:
            status = e.response.status_code if e.response is not None else None
            logger.warning("Reference image request failed", url=url, status=status)
            raise ImageFetchError(
                f"Failed to fetch '{ref}': HTTP {status}",
                details={"url": url, "status": status}
            ) from e
        except requests.RequestException as e:
            logger.warning("Reference image request failed", url=url, error=str(e))
            raise ImageFetchError(f"Failed to fetch '{ref}': {e}", details={"url": url}) from e

        return response.content
