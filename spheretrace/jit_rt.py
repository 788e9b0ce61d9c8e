import logging
import math
import time
from typing import List, Optional, Tuple

import numba
import numpy as np
from numpy.typing import NDArray

from spheretrace.common import IntersectionMode, Scene, Sphere, default_scene, new_frame
from spheretrace.app import App

logger = logging.getLogger(__name__)


def numba_auto_type(parallel=False):
    type_mapping = {
        int: "int64",
        float: "float64",
        bool: "boolean",
        List[float]: "float64[:]",
        List[List[float]]: "float64[:, :]",
        List[List[int]]: "uint8[:, :]",
        List[List[List[int]]]: "uint8[:, :, :]",
    }

    def inner(fun):
        signature = ""
        for what, annot in fun.__annotations__.items():
            if what != "return":
                signature += type_mapping[annot] + ", "

        # numpy error model: division by zero gives inf/nan like the Python renderer
        return numba.njit(signature, parallel=parallel, error_model="numpy")(fun)

    return inner


jit_function = numba_auto_type(parallel=False)
jit_kernel = numba_auto_type(parallel=True)


@jit_function
def dot(ax: float, ay: float, az: float, bx: float, by: float, bz: float) -> float:
    return ax * bx + ay * by + az * bz


@jit_function
def normalize(x: float, y: float, z: float) -> Tuple[float, float, float]:
    length = math.sqrt(dot(x, y, z, x, y, z))
    return x / length, y / length, z / length


@jit_function
def intersect(
    sphere: List[float],
    ox: float, oy: float, oz: float,
    dx: float, dy: float, dz: float,
    visible_only: bool,
) -> Tuple[bool, float]:
    ocx = ox - sphere[0]
    ocy = oy - sphere[1]
    ocz = oz - sphere[2]

    a = dot(dx, dy, dz, dx, dy, dz)
    b = 2.0 * dot(ocx, ocy, ocz, dx, dy, dz)
    c = dot(ocx, ocy, ocz, ocx, ocy, ocz) - sphere[3] * sphere[3]

    discriminant = b * b - 4.0 * a * c

    if discriminant < 0:
        return False, 0.0

    near = (-b - math.sqrt(discriminant)) / (2.0 * a)
    if not visible_only or near >= 0:
        return True, near

    far = (-b + math.sqrt(discriminant)) / (2.0 * a)
    if far >= 0:
        return True, far
    return False, 0.0


@jit_function
def is_closer(dist: float, than: float) -> bool:
    # hits in front of the camera rank before hits behind it
    if (dist >= 0) != (than >= 0):
        return dist >= 0
    return dist < than


@jit_function
def shoot_ray(
    spheres: List[List[float]],
    ox: float, oy: float, oz: float,
    dx: float, dy: float, dz: float,
    visible_only: bool,
) -> int:
    dist_to_nearest = 0.0
    nearest = -1
    for i in range(spheres.shape[0]):
        did_hit, dist = intersect(spheres[i], ox, oy, oz, dx, dy, dz, visible_only)
        if did_hit and (nearest == -1 or is_closer(dist, dist_to_nearest)):
            dist_to_nearest = dist
            nearest = i

    return nearest


@jit_kernel
def generate_image(
    image: List[List[List[int]]],
    spheres: List[List[float]],
    colors: List[List[int]],
    camera_position: List[float],
    viewport_height: float,
    visible_only: bool,
):
    height, width, _ = image.shape
    viewport_width = viewport_height * (width / height)

    # rows are write-disjoint
    for y in numba.prange(height):
        for x in range(width):
            u = (x + 0.5) / width
            v = (y + 0.5) / height
            dx, dy, dz = normalize(
                u * viewport_width - viewport_width / 2.0,
                v * viewport_height - viewport_height / 2.0,
                -1.0,
            )

            nearest = shoot_ray(
                spheres,
                camera_position[0], camera_position[1], camera_position[2],
                dx, dy, dz,
                visible_only,
            )
            if nearest != -1:
                image[y, x, 0] = colors[nearest, 0]
                image[y, x, 1] = colors[nearest, 1]
                image[y, x, 2] = colors[nearest, 2]


def scene_to_arrays(scene: Scene) -> Tuple[NDArray[np.float64], NDArray[np.uint8]]:
    """Pack the scene into (n, 4) center/radius rows and (n, 3) colors."""
    spheres = np.zeros((len(scene.objs), 4), dtype=np.float64)
    colors = np.zeros((len(scene.objs), 3), dtype=np.uint8)

    for i, s in enumerate(scene.objs):
        if not isinstance(s, Sphere):
            raise TypeError(f"The JIT renderer only supports spheres, got {type(s).__name__}")
        spheres[i] = (s.center.x, s.center.y, s.center.z, s.radius)
        colors[i] = s.color.to_array()

    return spheres, colors


def render_into(image: NDArray[np.uint8], scene: Scene) -> None:
    height, width, _ = image.shape
    # ZeroDivisionError for height == 0, before entering compiled code
    aspect = width / height
    logger.debug(f"Viewport {scene.viewport_height * aspect:.3f}x{scene.viewport_height:.3f}")

    spheres, colors = scene_to_arrays(scene)
    generate_image(
        image,
        spheres,
        colors,
        scene.camera_origin.to_array(),
        float(scene.viewport_height),
        scene.mode is IntersectionMode.VISIBLE,
    )


def render(width: int, height: int, scene: Optional[Scene] = None) -> bytes:
    if scene is None:
        scene = default_scene()

    image = new_frame(width, height, scene.background)
    render_into(image, scene)
    return image.tobytes()


class JitApp(App):
    def run(self):
        logger.info(f"Rendering {self.settings.width}x{self.settings.height} with numba ({numba.get_num_threads()} threads)")
        start = time.perf_counter()
        render_into(self.image, self.world)
        logger.info(f"Render finished in {time.perf_counter() - start:.2f}s")
