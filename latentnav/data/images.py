"""
Image handle helpers.

The generation server returns images as base64 PNG/JPEG strings, with or
without a `data:image/...;base64,` prefix. The UI needs numpy arrays.
"""

import base64
import io
from typing import Any, Optional

import numpy as np
from PIL import Image

DATA_URL_PREFIX = "data:image/png;base64,"


def encode_image(img: Image.Image) -> str:
    """Encode a PIL image as a PNG data URL."""
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    return DATA_URL_PREFIX + base64.b64encode(buf.getvalue()).decode("ascii")


def decode_image(handle: Any) -> Optional[np.ndarray]:
    """Convert an image handle to an RGB numpy array for gr.Image.

    Accepts data URLs, bare base64 strings, PIL images and arrays.
    Returns None for empty or undecodable handles.
    """
    if handle is None:
        return None
    if isinstance(handle, np.ndarray):
        return handle
    if isinstance(handle, Image.Image):
        return np.array(handle.convert("RGB"))
    if not isinstance(handle, str) or not handle:
        return None

    payload = handle.split(",", 1)[1] if handle.startswith("data:") else handle
    try:
        raw = base64.b64decode(payload)
        return np.array(Image.open(io.BytesIO(raw)).convert("RGB"))
    except Exception as e:
        print(f"Error decoding image handle: {e}")
        return None
