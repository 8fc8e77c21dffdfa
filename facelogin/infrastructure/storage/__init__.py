"""Reference image store implementations."""
from .http import HttpImageStore
from .local import LocalImageStore
from .s3 import S3ImageStore

__all__ = ["HttpImageStore", "LocalImageStore", "S3ImageStore"]
