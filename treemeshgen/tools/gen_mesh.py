# gen_mesh.py

import math
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

import numpy as np
import trimesh

from treemeshgen.tools.common import get_perpendicular, vec3
from treemeshgen.tools.texture_variation import UVVariation, apply_uv_variation

CAP_CENTER_UV = (0.5, 0.5)


class MeshBuffers:
    """
    A simple container class to store mesh data.
    - vertices:  a list of vec3 (positions)
    - triangles: a list of triangles, each a tuple (i1, i2, i3) of vertex
                 indices, counter-clockwise seen from outside
    - uvs:       a list of (u, v), one per vertex
    - colors:    None, or a list of (r, g, b, a), one per vertex

    Buffers only grow. Indices written by a builder are relative to the vertex
    count at the moment it started appending.
    """
    def __init__(self, with_colors=False):
        self.vertices = []   # list of vec3
        self.triangles = []  # list of (i1, i2, i3)
        self.uvs = []        # list of (u, v)
        self.colors = [] if with_colors else None

    @property
    def vertex_count(self):
        return len(self.vertices)

    @property
    def triangle_count(self):
        return len(self.triangles)

    def is_empty(self):
        return len(self.vertices) == 0 or len(self.triangles) == 0

    def to_arrays(self):
        """
        Numpy views of the buffers: (vertices Nx3, triangles Mx3, uvs Nx2,
        colors Nx4 or None).
        """
        vertices = np.array([[v.x, v.y, v.z] for v in self.vertices], dtype=np.float64).reshape(-1, 3)
        triangles = np.array(self.triangles, dtype=np.int64).reshape(-1, 3)
        uvs = np.array(self.uvs, dtype=np.float64).reshape(-1, 2)
        colors = None
        if self.colors is not None:
            colors = np.array(self.colors, dtype=np.float64).reshape(-1, 4)
        return vertices, triangles, uvs, colors

    def to_trimesh(self):
        vertices, triangles, uvs, colors = self.to_arrays()
        visual = None
        if colors is not None and len(colors) == len(vertices):
            visual = trimesh.visual.ColorVisuals(vertex_colors=(np.clip(colors, 0.0, 1.0) * 255).astype(np.uint8))
        elif len(uvs) == len(vertices):
            visual = trimesh.visual.TextureVisuals(uv=uvs)
        return trimesh.Trimesh(vertices=vertices, faces=triangles, visual=visual, process=False)


@dataclass(frozen=True)
class TubeSettings:
    blend_distance: float = 0.2
    tiling_horizontal: float = 1.0
    tiling_vertical: float = 1.0
    uv_variation: UVVariation = field(default_factory=UVVariation)


def export_meshes_to_obj(path: str, mesh_list: List[Tuple[str, MeshBuffers]]):
    with open(path, "w") as f:
        vert_offset = 0
        for name, mesh in mesh_list:
            f.write(f"g {name}\n")
            for v in mesh.vertices:
                f.write(f"v {v.x} {v.y} {v.z}\n")
            for u, v in mesh.uvs:
                f.write(f"vt {u} {v}\n")
            for face in mesh.triangles:
                # OBJ indices are 1-based and shared between v and vt here
                a, b, c = [idx + vert_offset + 1 for idx in face]
                f.write(f"f {a}/{a} {b}/{b} {c}/{c}\n")
            vert_offset += len(mesh.vertices)


def _ring_direction(points, i):
    if i < len(points) - 1:
        return (points[i + 1].position - points[i].position).normalized()
    return (points[i].position - points[i - 1].position).normalized()


def _append_ring(mesh: MeshBuffers, center: vec3, direction: vec3, perpendicular: vec3, radius: float,
                 segments: int, v_coord: float, branch_seed: int, settings: TubeSettings):
    """
    Appends one ring of 'segments' vertices around 'center', in the plane
    perpendicular to 'direction'.
    """
    binormal = direction.cross(perpendicular)
    for j in range(segments):
        angle = j * math.pi * 2.0 / segments
        offset = (perpendicular * math.cos(angle) + binormal * math.sin(angle)) * radius
        position = center + offset
        mesh.vertices.append(position)

        base_uv = ((j / segments) * settings.tiling_horizontal, v_coord)
        mesh.uvs.append(apply_uv_variation(base_uv, position, branch_seed, settings.uv_variation))


def add_tube(mesh: MeshBuffers, points: Sequence, segments: int, parent_direction: Optional[vec3],
             branch_seed: int, settings: TubeSettings):
    """
    Extrudes a tapering polyline into a capped tube and appends it to 'mesh'.

    - If 'parent_direction' is given and the blend distance is positive, an extra
      ring is extruded backward from the first point along the parent direction,
      burying the joint inside the parent surface.
    - The v coordinate follows cumulative arc length, u the angle around the ring.
    - Only the trunk (seed 0) carries its ring basis from ring to ring; every
      other branch picks a fresh perpendicular per ring.
    - The tip is closed with a fan around a single center vertex.

    :param mesh:             The MeshBuffers to which the tube is added
    :param points:           BranchPoints, base first (at least 2)
    :param segments:         Vertices per ring
    :param parent_direction: Connection direction, or None
    :param branch_seed:      Branch-local seed for texture variation
    :param settings:         Blend distance, tiling and UV variation
    """
    point_count = len(points)
    if point_count < 2:
        return

    start_vertex_index = len(mesh.vertices)

    cumulative_distances = [0.0] * point_count
    for i in range(1, point_count):
        cumulative_distances[i] = cumulative_distances[i - 1] + (points[i].position - points[i - 1].position).length()

    ring_offset = 0
    if parent_direction is not None and not parent_direction.is_zero() and settings.blend_distance > 0.0:
        ring_offset = 1
        connection_dir = parent_direction.normalized()
        connection_pos = points[0].position - connection_dir * settings.blend_distance
        _append_ring(
            mesh,
            connection_pos,
            connection_dir,
            get_perpendicular(connection_dir),
            points[0].radius,
            segments,
            -settings.blend_distance * settings.tiling_vertical,
            branch_seed,
            settings,
        )

    stabilize_twist = branch_seed == 0
    previous_perpendicular = None

    for i in range(point_count):
        direction = _ring_direction(points, i)

        if stabilize_twist and previous_perpendicular is not None:
            projected = previous_perpendicular - direction * previous_perpendicular.dot(direction)
            if projected.sqr_length() < 0.0001:
                perpendicular = get_perpendicular(direction)
            else:
                perpendicular = projected.normalized()
        else:
            perpendicular = get_perpendicular(direction)
        previous_perpendicular = perpendicular

        _append_ring(
            mesh,
            points[i].position,
            direction,
            perpendicular,
            points[i].radius,
            segments,
            cumulative_distances[i] * settings.tiling_vertical,
            branch_seed,
            settings,
        )

    total_rings = point_count + ring_offset
    for i in range(total_rings - 1):
        ring_start = start_vertex_index + i * segments
        next_ring_start = start_vertex_index + (i + 1) * segments
        for j in range(segments):
            next_j = (j + 1) % segments
            mesh.triangles.append((ring_start + j, next_ring_start + next_j, next_ring_start + j))
            mesh.triangles.append((ring_start + j, ring_start + next_j, next_ring_start + next_j))

    # End cap
    center_index = len(mesh.vertices)
    mesh.vertices.append(points[-1].position)
    mesh.uvs.append(CAP_CENTER_UV)

    last_ring_start = start_vertex_index + (total_rings - 1) * segments
    for j in range(segments):
        next_j = (j + 1) % segments
        mesh.triangles.append((center_index, last_ring_start + j, last_ring_start + next_j))


def tube_triangle_count(point_count: int, segments: int, with_blend_ring: bool = False) -> int:
    if point_count < 2:
        return 0
    rings = point_count + (1 if with_blend_ring else 0)
    return 2 * segments * (rings - 1) + segments
