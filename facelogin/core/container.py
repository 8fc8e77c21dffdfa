"""Service container for dependency injection."""
from typing import Optional

from facelogin.core.config import Settings, settings
from facelogin.domain.interfaces.camera.video_source import VideoSource
from facelogin.domain.interfaces.recognition.embedding_engine import EmbeddingEngine
from facelogin.domain.interfaces.storage.image_store import ReferenceImageStore
from facelogin.infrastructure.camera.opencv import OpenCVVideoSource
from facelogin.infrastructure.storage import HttpImageStore, LocalImageStore, S3ImageStore
from facelogin.services.login import LoginService


def build_image_store(config: Settings = settings) -> ReferenceImageStore:
    """Create the reference image store selected by ``IMAGE_STORE``."""
    kind = config.IMAGE_STORE.lower()
    if kind == "local":
        return LocalImageStore(config.FACES_ROOT)
    if kind == "http":
        return HttpImageStore(config.FACES_ROOT, timeout=config.HTTP_TIMEOUT_SECONDS)
    if kind == "s3":
        return S3ImageStore(bucket_name=config.AWS_S3_BUCKET, prefix=config.FACES_ROOT)
    raise ValueError(f"Unknown IMAGE_STORE '{config.IMAGE_STORE}', expected local, http or s3")


def build_engine(config: Settings = settings) -> EmbeddingEngine:
    """Create the InsightFace engine; weights load during bootstrap."""
    # Deferred so the API and tests can run without the model stack imported
    from facelogin.services.recognition.insight_face import InsightFaceEmbeddingEngine

    return InsightFaceEmbeddingEngine(model_name=config.MODEL_NAME, model_root=config.MODEL_CACHE_DIR)


class ServiceContainer:
    """Container for application services.

    Example:
        ```python
        container = ServiceContainer()
        await container.initialize()
        await container.login_service.start()
        ```
    """

    def __init__(self, config: Settings = settings) -> None:
        """Initialize empty container."""
        self.config = config
        self.engine: Optional[EmbeddingEngine] = None
        self.video_source: Optional[VideoSource] = None
        self.image_store: Optional[ReferenceImageStore] = None
        self.login_service: Optional[LoginService] = None

    async def initialize(self) -> None:
        """Initialize all services in the correct order."""
        self.engine = build_engine(self.config)
        self.video_source = OpenCVVideoSource()
        self.image_store = build_image_store(self.config)
        self.login_service = LoginService.from_settings(
            engine=self.engine,
            video_source=self.video_source,
            image_store=self.image_store,
            config=self.config,
        )

    async def cleanup(self) -> None:
        """Cleanup all services in reverse order of initialization."""
        if self.login_service:
            await self.login_service.shutdown()
            self.login_service = None

        self.image_store = None
        self.video_source = None
        self.engine = None


# Global container instance
container = ServiceContainer()
