"""Face embedding engine interface."""
import asyncio
from abc import ABC, abstractmethod
from typing import Optional

import numpy as np

from facelogin.core.exceptions import EngineReadinessTimeoutError
from facelogin.domain.value_objects.recognition import DetectorOptions


class EmbeddingEngine(ABC):
    """Interface for the external face detection/embedding engine.

    The engine is a black box: given an image or video frame and detector
    options it returns the embedding of at most one face.
    """

    @abstractmethod
    async def load_weights(self) -> None:
        """
        Load model weights so the engine can serve requests.

        Raises:
            ModelLoadError: If the weights cannot be fetched or initialized
        """
        pass

    @property
    @abstractmethod
    def is_ready(self) -> bool:
        """Whether every model the engine needs has its parameters assigned."""
        pass

    async def wait_until_ready(self, timeout: float, poll_interval: float = 0.016) -> None:
        """
        Poll ``is_ready`` until it holds or ``timeout`` seconds elapse.

        Args:
            timeout: Upper bound on the wait in seconds
            poll_interval: Delay between checks in seconds

        Raises:
            EngineReadinessTimeoutError: If the engine is not ready in time
        """
        async def _poll() -> None:
            while not self.is_ready:
                await asyncio.sleep(poll_interval)

        try:
            await asyncio.wait_for(_poll(), timeout=timeout)
        except asyncio.TimeoutError:
            raise EngineReadinessTimeoutError(
                f"Face models not ready after {timeout:.1f}s",
                details={"timeout": timeout}
            )

    @abstractmethod
    async def detect_embedding(
        self,
        image: np.ndarray,
        options: DetectorOptions,
    ) -> Optional[np.ndarray]:
        """
        Detect the most prominent face and extract its embedding.

        Args:
            image: BGR image or video frame
            options: Detector input size and score threshold for this call

        Returns:
            The embedding vector, or None if no face was detected

        Raises:
            InvalidImageError: If the image cannot be processed
        """
        pass
