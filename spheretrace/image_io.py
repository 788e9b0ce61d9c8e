import logging
import os
from typing import Union

import numpy as np
from numpy.typing import NDArray
from PIL import Image

logger = logging.getLogger(__name__)


class ImageWriteError(Exception):
    """The frame buffer could not be written to disk."""


def save_image(
    filename: Union[str, os.PathLike],
    width: int,
    height: int,
    data: Union[bytes, bytearray, NDArray[np.uint8]],
) -> None:
    """Write an RGB8 frame buffer as an image file.

    ``data`` is either the (height, width, 3) frame buffer or its flat
    row-major bytes. The file format follows the extension of ``filename``.
    """
    if isinstance(data, np.ndarray):
        pixels = np.ascontiguousarray(data, dtype=np.uint8)
    else:
        pixels = np.frombuffer(bytes(data), dtype=np.uint8)

    expected = width * height * 3
    if pixels.size != expected:
        raise ValueError(f"Expected {expected} bytes for a {width}x{height} RGB image, got {pixels.size}")

    logger.debug(f"Encoding {width}x{height} image to {filename}")
    try:
        Image.fromarray(pixels.reshape(height, width, 3)).save(filename)
    except (OSError, ValueError) as e:
        raise ImageWriteError(f"Could not write image '{filename}': {e}") from e
