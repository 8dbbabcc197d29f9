import numpy as np
import pytest

from treemeshgen.tools.branches import BranchPoint
from treemeshgen.tools.common import vec3
from treemeshgen.tools.gen_mesh import MeshBuffers, TubeSettings, add_tube, tube_triangle_count


def _vertical_branch(point_count, radius=0.5, rate=0.9):
    return [BranchPoint(vec3(0.0, 0.0, float(i)), radius * rate ** i) for i in range(point_count)]


def test_triangle_count_without_blend_ring():
    mesh = MeshBuffers()
    add_tube(mesh, _vertical_branch(5), 8, None, 0, TubeSettings())

    assert mesh.triangle_count == 2 * 8 * 4 + 8
    assert mesh.triangle_count == tube_triangle_count(5, 8)
    assert mesh.vertex_count == 5 * 8 + 1


def test_blend_ring_adds_one_ring_of_quads():
    mesh = MeshBuffers()
    add_tube(mesh, _vertical_branch(5), 6, vec3(1.0, 0.0, 0.0), 3, TubeSettings(blend_distance=0.2))

    assert mesh.triangle_count == 2 * 6 * 4 + 6 + 2 * 6
    assert mesh.triangle_count == tube_triangle_count(5, 6, with_blend_ring=True)
    assert mesh.vertex_count == 6 * 6 + 1


def test_zero_blend_distance_skips_blend_ring():
    mesh = MeshBuffers()
    add_tube(mesh, _vertical_branch(3), 6, vec3(1.0, 0.0, 0.0), 3, TubeSettings(blend_distance=0.0))
    assert mesh.triangle_count == tube_triangle_count(3, 6)


def test_short_branch_appends_nothing():
    mesh = MeshBuffers()
    add_tube(mesh, _vertical_branch(1), 8, None, 0, TubeSettings())
    assert mesh.is_empty()
    assert tube_triangle_count(1, 8) == 0


def test_indices_are_offset_by_existing_vertices():
    mesh = MeshBuffers()
    add_tube(mesh, _vertical_branch(3), 4, None, 0, TubeSettings())
    first_vertex_count = mesh.vertex_count
    first_triangle_count = mesh.triangle_count

    add_tube(mesh, _vertical_branch(3), 4, None, 1, TubeSettings())
    second = np.array(mesh.triangles[first_triangle_count:])
    assert second.min() >= first_vertex_count
    assert second.max() < mesh.vertex_count


def test_v_coordinate_follows_arc_length():
    mesh = MeshBuffers()
    settings = TubeSettings(tiling_vertical=2.0)
    add_tube(mesh, _vertical_branch(4), 5, None, 0, settings)

    _, _, uvs, _ = mesh.to_arrays()
    ring_v = uvs[:4 * 5, 1].reshape(4, 5)
    np.testing.assert_allclose(ring_v, np.repeat([[0.0], [2.0], [4.0], [6.0]], 5, axis=1))
    np.testing.assert_allclose(uvs[-1], [0.5, 0.5])


def test_blend_ring_sits_behind_the_base():
    mesh = MeshBuffers()
    settings = TubeSettings(blend_distance=0.3, tiling_vertical=1.0)
    add_tube(mesh, _vertical_branch(3), 4, vec3(0.0, 0.0, 1.0), 2, settings)

    vertices, _, uvs, _ = mesh.to_arrays()
    np.testing.assert_allclose(vertices[:4, 2], -0.3)
    np.testing.assert_allclose(uvs[:4, 1], -0.3)


def test_faces_point_outward():
    mesh = MeshBuffers()
    add_tube(mesh, _vertical_branch(4, rate=1.0), 12, None, 0, TubeSettings())
    vertices, triangles, _, _ = mesh.to_arrays()

    a, b, c = (vertices[triangles[:, k]] for k in range(3))
    normals = np.cross(b - a, c - a)
    centroids = (a + b + c) / 3.0

    body = slice(0, 2 * 12 * 3)
    radial = centroids[body].copy()
    radial[:, 2] = 0.0
    assert np.all(np.einsum("ij,ij->i", normals[body], radial) > 0.0)

    cap = slice(2 * 12 * 3, None)
    assert np.all(normals[cap][:, 2] > 0.0)


def test_trunk_rings_keep_their_orientation():
    # A gently bending trunk must not twist its rings.
    points = [BranchPoint(vec3(0.1 * i * i, 0.0, float(i)), 0.3) for i in range(5)]
    mesh = MeshBuffers()
    add_tube(mesh, points, 8, None, 0, TubeSettings())

    vertices, _, _, _ = mesh.to_arrays()
    first_offsets = [vertices[i * 8] - np.array([p.position.x, p.position.y, p.position.z])
                     for i, p in enumerate(points)]
    for previous, current in zip(first_offsets, first_offsets[1:]):
        assert np.dot(previous, current) > 0.0


@pytest.mark.parametrize("segments", [3, 8, 16])
def test_trimesh_conversion_keeps_counts(segments):
    mesh = MeshBuffers()
    add_tube(mesh, _vertical_branch(6), segments, None, 0, TubeSettings())
    converted = mesh.to_trimesh()

    assert len(converted.vertices) == mesh.vertex_count
    assert len(converted.faces) == mesh.triangle_count
