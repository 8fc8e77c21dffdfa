"""Reference image store interface."""
from abc import ABC, abstractmethod


class ReferenceImageStore(ABC):
    """Interface for fetching enrollment images by reference.

    References follow the ``{identity_directory}/{sample_index}.jpg``
    convention and are resolved relative to the store's root.
    """

    @abstractmethod
    async def fetch(self, ref: str) -> bytes:
        """
        Fetch the raw bytes of one reference image.

        Args:
            ref: Image reference relative to the store root

        Returns:
            Encoded image bytes

        Raises:
            ImageFetchError: If the image cannot be retrieved
        """
        pass
