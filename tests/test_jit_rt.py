import math

import numpy as np
import pytest

from spheretrace import cpu_rt, jit_rt
from spheretrace.common import Color, IntersectionMode, Ray, Scene, Settings, Sphere, Vector3, default_scene, is_closer


class Plane:
    color = Color(0, 0, 0)

    def intersect(self, ray, mode=IntersectionMode.NEAR_ROOT):
        raise AssertionError("not reached")


def as_pixels(buffer, width, height):
    return np.frombuffer(buffer, dtype=np.uint8).reshape(height, width, 3)


class TestKernels:
    def test_normalize(self):
        x, y, z = jit_rt.normalize(3.0, 4.0, 0.0)
        assert (x, y, z) == pytest.approx((0.6, 0.8, 0.0))

    def test_intersect_matches_sphere(self):
        sphere = np.array([0.0, 0.0, -5.0, 2.0])
        earth = default_scene().objs[0]
        for direction in [Vector3(0.0, 0.0, -1.0), Vector3(0.3, -0.2, -1.0), Vector3(0.0, 0.0, 1.0)]:
            d = direction.normalized()
            did_hit, t = jit_rt.intersect(sphere, 0.0, 0.0, 0.0, d.x, d.y, d.z, False)
            expected = earth.intersect(Ray(Vector3(0.0, 0.0, 0.0), d))
            assert did_hit == expected.is_hit
            assert math.isclose(t, expected.distance, abs_tol=1e-9)

    def test_intersect_visible_only(self):
        sphere = np.array([0.0, 0.0, -5.0, 2.0])
        did_hit, _ = jit_rt.intersect(sphere, 0.0, 0.0, 0.0, 0.0, 0.0, 1.0, True)
        assert not did_hit

        did_hit, t = jit_rt.intersect(sphere, 0.0, 0.0, -5.0, 0.0, 0.0, -1.0, True)
        assert did_hit
        assert t == 2.0

    def test_shoot_ray_nearest(self):
        spheres = np.array([
            [0.0, 0.0, -10.0, 4.0],
            [0.0, 0.0, -3.0, 0.5],
        ])
        assert jit_rt.shoot_ray(spheres, 0.0, 0.0, 0.0, 0.0, 0.0, -1.0, False) == 1
        assert jit_rt.shoot_ray(spheres, 0.0, 0.0, 0.0, 0.0, 1.0, 0.0, False) == -1

    def test_shoot_ray_prefers_hits_in_front(self):
        spheres = np.array([
            [0.0, 0.0, 5.0, 2.0],
            [0.0, 0.0, -5.0, 2.0],
        ])
        assert jit_rt.shoot_ray(spheres, 0.0, 0.0, 0.0, 0.0, 0.0, -1.0, False) == 1
        assert jit_rt.shoot_ray(spheres[:1], 0.0, 0.0, 0.0, 0.0, 0.0, -1.0, False) == 0

    @pytest.mark.parametrize("dist, than", [(5.0, -1.0), (1.0, 2.0), (-7.0, -3.0)])
    def test_is_closer_matches_python(self, dist, than):
        assert jit_rt.is_closer(dist, than) == is_closer(dist, than)
        assert jit_rt.is_closer(than, dist) == is_closer(than, dist)


class TestRender:
    def test_full_size_center_and_corner(self):
        image = as_pixels(jit_rt.render(800, 600), 800, 600)
        assert tuple(image[300, 400]) == (0, 123, 255)
        assert tuple(image[0, 0]) == (255, 255, 255)

    @pytest.mark.parametrize("width, height", [(1, 1), (32, 24), (10, 40)])
    def test_buffer_length(self, width, height):
        assert len(jit_rt.render(width, height)) == width * height * 3

    def test_matches_cpu_renderer(self):
        assert cpu_rt.render(160, 120) == jit_rt.render(160, 120)

    @pytest.mark.parametrize("mode", list(IntersectionMode))
    def test_matches_cpu_renderer_multiple_spheres(self, mode):
        scene = Scene(
            objs=(
                Sphere(Vector3(0.0, 0.0, -10.0), 4.0, Color(255, 0, 0)),
                Sphere(Vector3(0.5, 0.2, -3.0), 0.5, Color(0, 255, 0)),
                Sphere(Vector3(0.0, 0.0, 5.0), 3.0, Color(0, 0, 255)),
            ),
            background=Color(20, 20, 20),
            mode=mode,
        )
        assert cpu_rt.render(64, 48, scene) == jit_rt.render(64, 48, scene)

    def test_sphere_behind_camera_does_not_cover_sphere_in_front(self):
        scene = Scene(objs=(
            Sphere(Vector3(0.0, 0.0, -5.0), 2.0, Color(0, 0, 255)),
            Sphere(Vector3(0.0, 0.0, 5.0), 2.0, Color(255, 0, 0)),
        ))
        buffer = jit_rt.render(20, 20, scene)
        assert tuple(as_pixels(buffer, 20, 20)[10, 10]) == (0, 0, 255)
        assert buffer == cpu_rt.render(20, 20, scene)

    def test_deterministic(self):
        assert jit_rt.render(64, 48) == jit_rt.render(64, 48)

    def test_zero_height_fails(self):
        with pytest.raises(ZeroDivisionError):
            jit_rt.render(10, 0)


def test_scene_to_arrays():
    spheres, colors = jit_rt.scene_to_arrays(default_scene())
    np.testing.assert_array_equal(spheres, [[0.0, 0.0, -5.0, 2.0]])
    np.testing.assert_array_equal(colors, [[0, 123, 255]])
    assert colors.dtype == np.uint8


def test_scene_to_arrays_rejects_other_objects():
    with pytest.raises(TypeError):
        jit_rt.scene_to_arrays(Scene(objs=(Plane(),)))


def test_jit_app():
    app = jit_rt.JitApp(Settings(width=80, height=60, backend="jit"))
    app.run()
    assert tuple(app.image[30, 40]) == (0, 123, 255)
