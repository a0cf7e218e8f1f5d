"""Image handle and training-scatter helpers."""

from .images import decode_image, encode_image
from .training import training_frame

__all__ = [
    "decode_image",
    "encode_image",
    "training_frame",
]
