"""
Reference image store on S3 using aioboto3.
"""
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Optional

import aioboto3
from botocore.exceptions import ClientError, NoCredentialsError

from facelogin.core.config import settings
from facelogin.core.exceptions import ImageFetchError
from facelogin.core.logging import get_logger
from facelogin.domain.interfaces.storage.image_store import ReferenceImageStore

logger = get_logger(__name__)


class S3ImageStore(ReferenceImageStore):
    """Fetches reference images from ``s3://{bucket}/{prefix}/{ref}``."""

    def __init__(
        self,
        bucket_name: Optional[str] = None,
        prefix: str = "",
        region_name: Optional[str] = None,
        access_key_id: Optional[str] = None,
        secret_access_key: Optional[str] = None
    ):
        """Store configuration; a client is opened per request."""
        self.bucket_name = bucket_name or settings.AWS_S3_BUCKET
        self.prefix = prefix.strip("/")
        self.region_name = region_name or settings.AWS_REGION
        self.access_key_id = access_key_id or settings.AWS_ACCESS_KEY_ID
        self.secret_access_key = secret_access_key or settings.AWS_SECRET_ACCESS_KEY
        self._session = aioboto3.Session()

    def key_for(self, ref: str) -> str:
        ref = ref.lstrip("/")
        return f"{self.prefix}/{ref}" if self.prefix else ref

    @asynccontextmanager
    async def _get_client(self) -> AsyncGenerator[Any, None]:
        client_args = {'region_name': self.region_name or "us-east-1"}
        if self.access_key_id and self.secret_access_key:
            client_args['aws_access_key_id'] = self.access_key_id
            client_args['aws_secret_access_key'] = self.secret_access_key
        else:
            logger.debug("Allowing aioboto3 to discover AWS credentials automatically")

        async with self._session.client("s3", **client_args) as s3:
            yield s3

    async def fetch(self, ref: str) -> bytes:
        key = self.key_for(ref)
        try:
            async with self._get_client() as s3:
                response = await s3.get_object(Bucket=self.bucket_name, Key=key)
                return await response['Body'].read()
        except NoCredentialsError as e:
            logger.error("AWS credentials not found")
            raise ImageFetchError("AWS credentials not found or configured correctly.") from e
        except ClientError as e:
            error_code = e.response.get('Error', {}).get('Code')
            if error_code == 'NoSuchKey':
                raise ImageFetchError(f"File not found: {key}") from e
            elif error_code == 'NoSuchBucket':
                logger.error("Bucket not found", bucket=self.bucket_name, key=key)
                raise ImageFetchError(f"Bucket not found: {self.bucket_name}") from e
            elif error_code == '403' or "Forbidden" in str(e) or "Access Denied" in str(e):
                logger.error("Access denied for reference image", bucket=self.bucket_name, key=key)
                raise ImageFetchError(f"Access denied for file: {key}") from e
            raise ImageFetchError(f"Failed to retrieve file '{key}' due to S3 error: {e}") from e
