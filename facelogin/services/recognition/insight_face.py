"""
InsightFace-based implementation of the face embedding engine.

This module provides a concrete EmbeddingEngine using the InsightFace
library: SCRFD for detection and ArcFace for recognition, both run through
ONNX Runtime. Only the detection and recognition modules of the model pack
are loaded.

Key Features:
    - Per-call detector input size and score threshold
    - Single most prominent face per image or frame
    - L2-normalized embeddings
    - Inference off the event loop

Example:
    ```python
    engine = InsightFaceEmbeddingEngine()
    await engine.load_weights()
    embedding = await engine.detect_embedding(frame, DetectorOptions(input_size=320, score_threshold=0.5))
    ```

Note:
    This implementation uses CPU inference by default. For GPU support,
    pass 'CUDAExecutionProvider' in ``providers``.
"""
import asyncio
import threading
from typing import Any, List, Optional, TypeVar

import numpy as np
from insightface.app import FaceAnalysis
from insightface.app.common import Face as InsightFace

from facelogin.core.config import settings
from facelogin.core.exceptions import InvalidImageError, ModelLoadError
from facelogin.core.logging import get_logger
from facelogin.domain.interfaces.recognition.embedding_engine import EmbeddingEngine
from facelogin.domain.value_objects.recognition import DetectorOptions

logger = get_logger(__name__)

# Type variable for context manager
T = TypeVar('T', bound='InsightFaceEmbeddingEngine')

REQUIRED_MODULES = ("detection", "recognition")


class InsightFaceEmbeddingEngine(EmbeddingEngine):
    """
    InsightFace-based embedding engine.

    Attributes:
        model: InsightFace model pack, None until weights are loaded

    Performance Characteristics:
        - Detection time: ~20ms at 320px, ~50ms at 640px
        - Embedding dimension: 512
    """

    def __init__(
        self,
        model_name: Optional[str] = None,
        model_root: Optional[str] = None,
        providers: Optional[List[str]] = None,
    ) -> None:
        """Store model configuration; weights are loaded by ``load_weights``."""
        self.model_name = model_name or settings.MODEL_NAME
        self.model_root = model_root or settings.MODEL_CACHE_DIR
        self.providers = providers or ['CPUExecutionProvider']
        self.model: Optional[FaceAnalysis] = None
        self._load_lock = asyncio.Lock()
        # Detector threshold is model state, so calls are serialized
        self._inference_lock = threading.Lock()

    async def __aenter__(self: T) -> T:
        """Enter async context, loading weights if needed."""
        logger.debug("Entering InsightFace engine context")
        await self.load_weights()
        return self

    async def __aexit__(self, exc_type: Optional[type], exc_val: Optional[Exception],
                        exc_tb: Optional[Any]) -> None:
        """Exit async context, dropping model resources."""
        logger.debug("Cleaning up InsightFace engine resources")
        if exc_type:
            logger.error(
                "Error occurred during context exit",
                error=str(exc_val),
                exc_info=True
            )
        self.model = None

    @property
    def is_ready(self) -> bool:
        if self.model is None:
            return False
        models = getattr(self.model, "models", {})
        return all(models.get(name) is not None for name in REQUIRED_MODULES) \
            and getattr(self.model, "det_model", None) is not None

    async def load_weights(self) -> None:
        async with self._load_lock:
            if self.model is not None:
                return
            logger.info("Loading face models", model=self.model_name, root=self.model_root)
            try:
                self.model = await asyncio.to_thread(self._load_model)
            except Exception as e:
                logger.error("Face model loading failed", error=str(e), exc_info=True)
                raise ModelLoadError(
                    f"Failed to load face models '{self.model_name}': {e}",
                    details={"model": self.model_name}
                ) from e
            logger.info("Face models loaded", model=self.model_name)

    def _load_model(self) -> FaceAnalysis:
        model = FaceAnalysis(
            name=self.model_name,
            root=self.model_root,
            providers=self.providers,
            allowed_modules=list(REQUIRED_MODULES)
        )
        model.prepare(ctx_id=0, det_size=(640, 640))
        return model

    async def detect_embedding(
        self,
        image: np.ndarray,
        options: DetectorOptions,
    ) -> Optional[np.ndarray]:
        """Detect the most prominent face and return its normalized embedding."""
        if self.model is None:
            raise ModelLoadError("Face models are not loaded")
        if not isinstance(image, np.ndarray) or image.ndim != 3:
            raise InvalidImageError("Expected a BGR image array")

        face = await asyncio.to_thread(self._detect_one, image, options)
        if face is None:
            return None

        logger.debug(
            "Face detected",
            det_score=float(face.det_score),
            input_size=options.input_size
        )
        return np.asarray(face.normed_embedding, dtype=np.float32)

    def _detect_one(self, image: np.ndarray, options: DetectorOptions) -> Optional[InsightFace]:
        """Run detection and recognition for at most one face."""
        with self._inference_lock:
            det_model = self.model.det_model
            det_model.det_thresh = options.score_threshold
            bboxes, kpss = det_model.detect(
                image,
                input_size=(options.input_size, options.input_size),
                max_num=1,
                metric='default'
            )
            if bboxes is None or bboxes.shape[0] == 0:
                return None

            face = InsightFace(
                bbox=bboxes[0, 0:4],
                kps=kpss[0] if kpss is not None else None,
                det_score=bboxes[0, 4]
            )
            self.model.models["recognition"].get(image, face)
            return face
