"""
Image processing utility functions.
"""
import math
from typing import Optional

import cv2
import numpy as np

from facelogin.core.exceptions import InvalidImageError


def bytes_to_numpy_array(image_bytes: bytes, flags: int = cv2.IMREAD_COLOR) -> np.ndarray:
    """Convert image bytes to a numpy array.

    Args:
        image_bytes: Raw image bytes
        flags: OpenCV imread flags (default: COLOR)

    Returns:
        numpy.ndarray: Image as a numpy array

    Raises:
        InvalidImageError: If the image cannot be decoded
    """
    if not image_bytes:
        raise InvalidImageError("Empty image payload")

    np_array = np.frombuffer(image_bytes, np.uint8)
    img = cv2.imdecode(np_array, flags)

    if img is None:
        raise InvalidImageError("Failed to decode image bytes")

    return img


def limit_image_size(image: np.ndarray, max_pixels: Optional[int]) -> np.ndarray:
    """Downscale an image so it holds at most ``max_pixels`` pixels."""
    if not max_pixels:
        return image

    height, width = image.shape[:2]
    pixels = width * height
    if pixels <= max_pixels:
        return image

    scale = math.sqrt(max_pixels / pixels)
    return cv2.resize(
        image,
        (int(width * scale), int(height * scale)),
        interpolation=cv2.INTER_AREA
    )
