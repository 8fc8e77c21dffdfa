"""Reference image store backed by a local directory."""
import asyncio
from pathlib import Path
from typing import Union

from facelogin.core.exceptions import ImageFetchError
from facelogin.core.logging import get_logger
from facelogin.domain.interfaces.storage.image_store import ReferenceImageStore

logger = get_logger(__name__)


class LocalImageStore(ReferenceImageStore):
    """Reads reference images from ``root / ref``."""

    def __init__(self, root: Union[str, Path]) -> None:
        self.root = Path(root)

    async def fetch(self, ref: str) -> bytes:
        path = (self.root / ref).resolve()
        if self.root.resolve() not in path.parents:
            raise ImageFetchError(f"Reference escapes image root: {ref}")

        try:
            return await asyncio.to_thread(path.read_bytes)
        except FileNotFoundError as e:
            raise ImageFetchError(f"File not found: {ref}") from e
        except OSError as e:
            logger.error("Failed to read reference image", path=str(path), error=str(e))
            raise ImageFetchError(f"Failed to read file '{ref}': {e}") from e
