import numpy as np
import trimesh
from dataclasses import dataclass
from typing import Optional

# base footprint radius relative to the vase foot radius
BASE_RADIUS_MARGIN = 1.1


@dataclass
class TriangleMesh:
    """Vertex/normal buffers plus an optional (M, 3) index buffer.

    Without indices the mesh is flat: every 3 consecutive vertices form a triangle.
    Meshes are treated as values; the helpers below always return new meshes.
    """

    positions: np.ndarray
    normals: np.ndarray
    indices: Optional[np.ndarray] = None

    def __post_init__(self):
        self.positions = np.asarray(self.positions, dtype=np.float64).reshape(-1, 3)
        self.normals = np.asarray(self.normals, dtype=np.float64).reshape(-1, 3)

        if len(self.normals) != len(self.positions):
            raise ValueError(
                f"normals ({len(self.normals)}) and positions ({len(self.positions)}) differ in length"
            )

        if self.indices is not None:
            self.indices = np.asarray(self.indices, dtype=np.int64).reshape(-1, 3)
            if len(self.indices) and (self.indices.min() < 0 or self.indices.max() >= len(self.positions)):
                raise ValueError("index buffer references a missing vertex")
        elif len(self.positions) % 3 != 0:
            raise ValueError("flat mesh needs a multiple of 3 vertices")

    @property
    def vertex_count(self):
        return len(self.positions)

    @property
    def triangle_count(self):
        if self.indices is not None:
            return len(self.indices)
        return len(self.positions) // 3

    @property
    def faces(self):
        """Index triples, synthesised for flat meshes"""
        if self.indices is not None:
            return self.indices
        return np.arange(len(self.positions), dtype=np.int64).reshape(-1, 3)

    def triangles(self):
        """(M, 3, 3) array of triangle corner positions"""
        return self.positions[self.faces]

    @property
    def bounds(self):
        return np.array([self.positions.min(axis=0), self.positions.max(axis=0)])

    def copy(self):
        return TriangleMesh(
            self.positions.copy(),
            self.normals.copy(),
            None if self.indices is None else self.indices.copy(),
        )

    def translated(self, offset):
        moved = self.copy()
        moved.positions = moved.positions + np.asarray(offset, dtype=np.float64)
        return moved

    def scaled(self, factor):
        """Uniform scale about the origin; normal directions are unchanged"""
        resized = self.copy()
        resized.positions = resized.positions * float(factor)
        return resized


def compute_vertex_normals(positions, faces):
    """Per-vertex normals recomputed from the triangulated surface"""
    surface = trimesh.Trimesh(vertices=positions, faces=faces, process=False)
    return np.array(surface.vertex_normals, dtype=np.float64)


def merge_meshes(first, second):
    """Concatenate two meshes; the second's indices are shifted past the first's vertices"""
    positions = np.concatenate([first.positions, second.positions])
    normals = np.concatenate([first.normals, second.normals])

    # flat inputs are given explicit indices so the buffers can be joined
    indices = np.concatenate([first.faces, second.faces + first.vertex_count])

    return TriangleMesh(positions, normals, indices)


def prepare_base_mesh(base):
    """Centre a loaded base horizontally and set its lowest point on the floor"""
    low, high = base.bounds
    center = (low + high) / 2
    return base.translated([-center[0], -low[1], -center[2]])


def combine_with_base(vase, base, settings):
    """Scale the base to the vase foot, stack the vase on it and merge both.

    Without a base or settings the vase is returned unchanged.
    """
    if base is None or settings is None or base.vertex_count == 0:
        return vase

    base = prepare_base_mesh(base)
    low, high = base.bounds

    # horizontal footprint radius of the base
    footprint = max(high[0] - low[0], high[2] - low[2]) / 2
    target_radius = settings.base_radius * BASE_RADIUS_MARGIN
    if footprint > 0:
        base = base.scaled(target_radius / footprint)

    # scaling about the origin keeps the floor at y=0
    base_top = base.bounds[1][1]
    vase_bottom = vase.bounds[0][1]
    lifted = vase.translated([0.0, base_top - vase_bottom, 0.0])

    # seam between vase and base is a butt joint, not welded
    return merge_meshes(lifted, base)
