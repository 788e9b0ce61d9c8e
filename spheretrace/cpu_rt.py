import logging
import time
from typing import Optional

import numpy as np
from numpy.typing import NDArray

from spheretrace.common import Ray, Scene, Vector3, default_scene, new_frame
from spheretrace.app import App

logger = logging.getLogger(__name__)


def camera_ray(scene: Scene, x: int, y: int, width: int, height: int) -> Ray:
    """Ray through the center of pixel (x, y) of a pinhole camera looking down -z."""
    viewport_height = scene.viewport_height
    viewport_width = viewport_height * (width / height)

    u = (x + 0.5) / width
    v = (y + 0.5) / height
    direction = Vector3(
        u * viewport_width - viewport_width / 2.0,
        v * viewport_height - viewport_height / 2.0,
        -1.0,
    ).normalized()

    return Ray(scene.camera_origin, direction)


def render_into(image: NDArray[np.uint8], scene: Scene) -> None:
    height, width, _ = image.shape
    # ZeroDivisionError for height == 0
    aspect = width / height
    logger.debug(f"Viewport {scene.viewport_height * aspect:.3f}x{scene.viewport_height:.3f}")

    for y in range(height):
        for x in range(width):
            hit = scene.shoot_ray(camera_ray(scene, x, y, width, height))
            if hit is not None:
                image[y, x, :] = (hit.color.r, hit.color.g, hit.color.b)


def render(width: int, height: int, scene: Optional[Scene] = None) -> bytes:
    """Render the scene and return the flat RGB frame buffer.

    The result is ``width * height * 3`` bytes, row-major from the top-left
    pixel, with no padding.
    """
    if scene is None:
        scene = default_scene()

    image = new_frame(width, height, scene.background)
    render_into(image, scene)
    return image.tobytes()


class CpuApp(App):
    def run(self):
        logger.info(f"Rendering {self.settings.width}x{self.settings.height} on the CPU")
        start = time.perf_counter()
        render_into(self.image, self.world)
        logger.info(f"Render finished in {time.perf_counter() - start:.2f}s")
