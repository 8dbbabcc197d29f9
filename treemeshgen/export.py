from pathlib import Path

import numpy as np
import trimesh

from treemeshgen.tools.gen_mesh import export_meshes_to_obj

SUPPORTED_FILE_FORMATS = ("obj", "glb", "ply")


def _named_meshes(result):
    return [(name, mesh) for name, mesh in (("bark", result.bark), ("foliage", result.foliage))
            if not mesh.is_empty()]


def _merged_trimesh(meshes):
    """Single mesh with per-vertex colors; bark vertices are opaque white."""
    vertices, faces, colors = [], [], []
    offset = 0
    for mesh in meshes:
        mesh_vertices, mesh_faces, _, mesh_colors = mesh.to_arrays()
        if mesh_colors is None:
            mesh_colors = np.ones((len(mesh_vertices), 4))
        vertices.append(mesh_vertices)
        faces.append(mesh_faces + offset)
        colors.append(mesh_colors)
        offset += len(mesh_vertices)

    if not vertices:
        return trimesh.Trimesh()
    vertex_colors = (np.clip(np.vstack(colors), 0.0, 1.0) * 255).astype(np.uint8)
    return trimesh.Trimesh(vertices=np.vstack(vertices), faces=np.vstack(faces),
                           vertex_colors=vertex_colors, process=False)


def save_tree_mesh(result, output_path: Path, file_format: str = "obj") -> Path:
    """
    Write bark and foliage of a generated tree to one file. OBJ and GLB keep
    them as separate named groups; PLY holds a single merged mesh.
    """
    file_format = file_format.lower()
    if file_format not in SUPPORTED_FILE_FORMATS:
        raise ValueError(
            f"Unsupported file_format '{file_format}'. Expected one of: {', '.join(SUPPORTED_FILE_FORMATS)}"
        )

    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    named_meshes = _named_meshes(result)

    if file_format == "obj":
        export_meshes_to_obj(str(output_path), named_meshes)
        return output_path

    if file_format == "glb":
        scene = trimesh.Scene()
        for name, mesh in named_meshes:
            scene.add_geometry(mesh.to_trimesh(), node_name=name, geom_name=name)
        scene.export(str(output_path), file_type="glb")
        return output_path

    merged = _merged_trimesh([mesh for _, mesh in named_meshes])
    merged.export(str(output_path), file_type="ply")
    return output_path
