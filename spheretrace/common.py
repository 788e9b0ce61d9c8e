import enum
import math
from dataclasses import dataclass
from typing import ClassVar, Optional, Protocol, Tuple, Union

import numpy as np
from numpy.typing import NDArray


class IntersectionMode(enum.Enum):
    # any non-negative discriminant is a hit at the near root, even behind the camera
    NEAR_ROOT = "near-root"
    # only roots with t >= 0 count, the far root is used from inside a sphere
    VISIBLE = "visible"


@dataclass(frozen=True)
class Vector3:
    x: float
    y: float
    z: float

    def __sub__(self, other: "Vector3") -> "Vector3":
        return Vector3(self.x - other.x, self.y - other.y, self.z - other.z)

    def dot(self, other: "Vector3") -> float:
        return self.x * other.x + self.y * other.y + self.z * other.z

    def length(self) -> float:
        return math.sqrt(self.dot(self))

    def normalized(self) -> "Vector3":
        """Unit vector with the same direction.

        The zero vector is not guarded against: numpy float division turns
        it into NaN components with a RuntimeWarning instead of raising.
        """
        length = np.float64(self.length())
        return Vector3(
            float(self.x / length),
            float(self.y / length),
            float(self.z / length),
        )

    def to_array(self) -> NDArray[np.float64]:
        return np.array([self.x, self.y, self.z], dtype=np.float64)


@dataclass(frozen=True)
class Color:
    r: int
    g: int
    b: int

    def __post_init__(self):
        for channel in (self.r, self.g, self.b):
            if not 0 <= channel <= 255:
                raise ValueError(f"Color channel out of range [0, 255]: {channel}")

    def to_array(self) -> NDArray[np.uint8]:
        return np.array([self.r, self.g, self.b], dtype=np.uint8)


WHITE = Color(255, 255, 255)


@dataclass(frozen=True)
class Ray:
    origin: Vector3
    direction: Vector3


@dataclass(frozen=True)
class Hit:
    distance: float
    is_hit: ClassVar[bool] = True


class Miss:
    is_hit: ClassVar[bool] = False

    def __repr__(self):
        return "MISS"


MISS = Miss()

Intersection = Union[Hit, Miss]


class Hittable(Protocol):
    color: Color

    def intersect(self, ray: Ray, mode: IntersectionMode = IntersectionMode.NEAR_ROOT) -> Intersection:
        ...


@dataclass(frozen=True)
class Sphere:
    center: Vector3
    radius: float
    color: Color

    def __post_init__(self):
        if not self.radius > 0:
            raise ValueError(f"Sphere radius must be positive, got {self.radius}")

    def intersect(self, ray: Ray, mode: IntersectionMode = IntersectionMode.NEAR_ROOT) -> Intersection:
        oc = ray.origin - self.center

        a = ray.direction.dot(ray.direction)  # 1.0 for camera rays, computed anyway
        b = 2.0 * oc.dot(ray.direction)
        c = oc.dot(oc) - self.radius * self.radius

        discriminant = b * b - 4.0 * a * c

        if discriminant < 0:
            return MISS

        # a == 0 gives inf/nan here instead of raising
        near = float(np.float64(-b - math.sqrt(discriminant)) / (2.0 * a))
        if mode is IntersectionMode.NEAR_ROOT or near >= 0:
            return Hit(near)

        far = float(np.float64(-b + math.sqrt(discriminant)) / (2.0 * a))
        return Hit(far) if far >= 0 else MISS


@dataclass(frozen=True)
class SceneHit:
    distance: float
    color: Color


@dataclass(frozen=True)
class Scene:
    objs: Tuple[Hittable, ...]
    camera_origin: Vector3 = Vector3(0.0, 0.0, 0.0)
    viewport_height: float = 2.0
    background: Color = WHITE
    mode: IntersectionMode = IntersectionMode.NEAR_ROOT

    def shoot_ray(self, ray: Ray) -> Optional[SceneHit]:
        # Find the nearest intersection in the scene
        nearest: Optional[SceneHit] = None
        for obj in self.objs:
            hit = obj.intersect(ray, self.mode)
            if hit.is_hit and (nearest is None or is_closer(hit.distance, nearest.distance)):
                nearest = SceneHit(hit.distance, obj.color)

        return nearest


def is_closer(distance: float, than: float) -> bool:
    """Order hit distances: any hit in front of the camera beats one behind it.

    Behind-camera hits only come out of ``IntersectionMode.NEAR_ROOT`` and
    are kept when nothing is in front.
    """
    if (distance >= 0) != (than >= 0):
        return distance >= 0
    return distance < than


def default_scene(mode: IntersectionMode = IntersectionMode.NEAR_ROOT) -> Scene:
    earth = Sphere(
        center=Vector3(0.0, 0.0, -5.0),
        radius=2.0,
        color=Color(0, 123, 255),
    )

    return Scene(objs=(earth,), mode=mode)


@dataclass
class Settings:
    width: int = 800
    height: int = 600
    output: str = "flight_paths.png"
    backend: str = "cpu"
    mode: IntersectionMode = IntersectionMode.NEAR_ROOT

    def __post_init__(self):
        if self.width <= 0 or self.height <= 0:
            raise ValueError(f"Image size must be positive, got {self.width}x{self.height}")
        if self.backend not in ("cpu", "jit"):
            raise ValueError(f"Unknown backend: {self.backend}")


def new_frame(width: int, height: int, background: Color = WHITE) -> NDArray[np.uint8]:
    """Frame buffer of shape (height, width, 3) filled with the background."""
    image = np.empty((height, width, 3), dtype=np.uint8)
    image[:, :] = background.to_array()
    return image
