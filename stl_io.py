"""
STL and web-preview I/O for vase meshes
Writes ASCII/binary STL, reads uploaded base STLs, and exports Three.js preview data
"""

import io
import json

import numpy as np
import stl
import trimesh

from triangle_mesh import TriangleMesh

SOLID_NAME = "AudioVase"


def _to_numpy_stl(mesh, name=SOLID_NAME):
    """Flatten a TriangleMesh into a numpy-stl mesh (one record per triangle)"""
    data = np.zeros(mesh.triangle_count, dtype=stl.mesh.Mesh.dtype)
    data['vectors'] = mesh.triangles()

    # zero-area triangles are kept as they are
    return stl.mesh.Mesh(data, remove_empty_areas=False, name=name)


def write_stl(mesh, fh, mode="ascii", name=SOLID_NAME):
    """Write a mesh to a binary file handle; facet normals come from edge cross products"""
    stl_mode = stl.Mode.BINARY if mode == "binary" else stl.Mode.ASCII
    solid = _to_numpy_stl(mesh, name)
    solid.save(f"{name}.stl", fh=fh, mode=stl_mode, update_normals=True)


def generate_stl_string(mesh, name=SOLID_NAME):
    """ASCII STL document for a mesh"""
    buffer = io.BytesIO()
    write_stl(mesh, buffer, mode="ascii", name=name)
    return buffer.getvalue().decode('ascii')


def save_stl(mesh, filename, mode="ascii", name=SOLID_NAME):
    """Export mesh to an STL file"""
    with open(filename, 'wb') as fh:
        write_stl(mesh, fh, mode=mode, name=name)
    return filename


def load_stl(source):
    """Read an ASCII or binary STL (path or raw bytes) into a flat TriangleMesh"""
    try:
        if isinstance(source, (bytes, bytearray)):
            solid = stl.mesh.Mesh.from_file("upload.stl", fh=io.BytesIO(bytes(source)))
        else:
            solid = stl.mesh.Mesh.from_file(str(source))
    except FileNotFoundError:
        raise
    except Exception as e:
        raise ValueError(f"Could not read STL: {e}") from e

    if solid.data is None or len(solid.data) == 0:
        raise ValueError("STL contains no triangles")

    vectors = np.asarray(solid.vectors, dtype=np.float64)

    # per-vertex normals are the (unit) facet normals
    face_normals = np.cross(vectors[:, 1] - vectors[:, 0], vectors[:, 2] - vectors[:, 0])
    lengths = np.linalg.norm(face_normals, axis=1, keepdims=True)
    face_normals = np.divide(face_normals, lengths, out=np.zeros_like(face_normals), where=lengths > 0)

    return TriangleMesh(
        positions=vectors.reshape(-1, 3),
        normals=np.repeat(face_normals, 3, axis=0),
    )


def mesh_to_threejs_json(mesh, output_path=None):
    """Convert a mesh to Three.js BufferGeometry JSON"""
    index_type = "Uint32Array" if mesh.vertex_count > 65535 else "Uint16Array"

    geometry = {
        "metadata": {
            "version": 4.5,
            "type": "BufferGeometry",
            "generator": "Audio Vase Generator"
        },
        "data": {
            "attributes": {
                "position": {
                    "itemSize": 3,
                    "type": "Float32Array",
                    "array": mesh.positions.flatten().tolist()
                },
                "normal": {
                    "itemSize": 3,
                    "type": "Float32Array",
                    "array": mesh.normals.flatten().tolist()
                }
            },
            "index": {
                "type": index_type,
                "array": mesh.faces.flatten().tolist()
            }
        }
    }

    if output_path is not None:
        with open(output_path, 'w') as f:
            json.dump(geometry, f)

    return geometry


def get_mesh_info(mesh):
    """Get basic information about a mesh"""
    surface = trimesh.Trimesh(vertices=mesh.positions, faces=mesh.faces, process=False)

    return {
        "vertices_count": mesh.vertex_count,
        "faces_count": mesh.triangle_count,
        "bounds": surface.bounds.tolist() if mesh.vertex_count else None,
        "volume": float(surface.volume) if surface.is_watertight else 0.0,
        "is_watertight": bool(surface.is_watertight),
    }
