import numpy as np
from dataclasses import dataclass
from typing import Optional

from triangle_mesh import TriangleMesh, compute_vertex_normals

# Lattice: open tapered cylinder, rows from top to bottom, one duplicated seam column
# Displacement: radius grows with loudness and with noise driven by angle/height/audio
# Ribs: optional vertical grooves applied last, before normals are recomputed

RADIUS_EPSILON = 1e-6  # below this a vertex sits on the axis and is left alone
MIN_SEGMENTS = 3
MIN_HEIGHT = 1e-6


@dataclass
class RibSettings:
    """Vertical grooves ("lamellen") around the shell"""

    count: int = 24
    depth: float = 1.0
    width: float = 0.5  # groove share of each cycle, 0-1


@dataclass
class GenerationSettings:
    """Shape parameters for one vase (lengths in cm by convention)"""

    height: float = 20.0
    base_radius: float = 8.0
    top_radius: float = 6.0
    radial_segments: int = 64
    height_segments: int = 100
    amplitude_gain: float = 3.0
    noise_scale: float = 1.0
    noise_intensity: float = 1.2
    smoothing_factor: float = 0.2
    ribs: Optional[RibSettings] = None


def create_cylinder_lattice(height, base_radius, top_radius, radial_segments, height_segments):
    """Open-ended tapered cylinder centred on the origin, y axis up.

    Returns (vertices, faces) with (radial_segments + 1) * (height_segments + 1) vertices.
    """
    height = max(float(height), MIN_HEIGHT)
    radial_segments = max(int(radial_segments), MIN_SEGMENTS)
    height_segments = max(int(height_segments), MIN_SEGMENTS)

    # row 0 is the top ring
    v = np.linspace(0.0, 1.0, height_segments + 1)
    theta = np.linspace(0.0, 2 * np.pi, radial_segments + 1)

    ring_radius = v * (base_radius - top_radius) + top_radius
    ring_y = -v * height + height / 2

    radius = np.repeat(ring_radius, radial_segments + 1)
    vertices = np.column_stack([
        radius * np.tile(np.sin(theta), height_segments + 1),
        np.repeat(ring_y, radial_segments + 1),
        radius * np.tile(np.cos(theta), height_segments + 1),
    ])

    # each lattice quad becomes 2 triangles
    row = radial_segments + 1
    ys, xs = np.meshgrid(np.arange(height_segments), np.arange(radial_segments), indexing="ij")
    a = (ys * row + xs).ravel()
    b = ((ys + 1) * row + xs).ravel()
    c = ((ys + 1) * row + xs + 1).ravel()
    d = (ys * row + xs + 1).ravel()

    faces = np.empty((len(a) * 2, 3), dtype=np.int64)
    faces[0::2] = np.column_stack([a, b, d])
    faces[1::2] = np.column_stack([b, c, d])

    return vertices, faces


def _rescale_radius(vertices, new_radius):
    """Move (x, z) onto new_radius in place, skipping vertices on the axis"""
    radius = np.hypot(vertices[:, 0], vertices[:, 2])
    safe = radius > RADIUS_EPSILON

    scale = np.ones_like(radius)
    scale[safe] = new_radius[safe] / radius[safe]

    vertices[:, 0] *= scale
    vertices[:, 2] *= scale


def _rib_wave(cycle, width, edge=0.1):
    """Square wave: -1 in the groove, +1 on the ridge, cosine-blended edges"""
    wave = np.where(cycle < width, -1.0, 1.0)

    start = cycle < edge
    t = cycle / edge
    wave = np.where(start, 1.0 - 2.0 * (np.cos(t * np.pi) * 0.5 + 0.5), wave)

    groove_end = (cycle > width - edge) & (cycle < width) & ~start
    t = (cycle - (width - edge)) / edge
    wave = np.where(groove_end, 1.0 - 2.0 * (np.cos((1 - t) * np.pi) * 0.5 + 0.5), wave)

    ridge_start = (cycle > width) & (cycle < width + edge) & ~start & ~groove_end
    t = (cycle - width) / edge
    wave = np.where(ridge_start, 2.0 * (np.cos(t * np.pi) * 0.5 + 0.5) - 1.0, wave)

    ridge_end = (cycle > 1.0 - edge) & ~start & ~groove_end & ~ridge_start
    t = (cycle - (1.0 - edge)) / edge
    wave = np.where(ridge_end, 2.0 * (np.cos((1 - t) * np.pi) * 0.5 + 0.5) - 1.0, wave)

    return wave


def apply_ribs(vertices, ribs):
    """Cut vertical grooves into the shell by offsetting each vertex radially"""
    if ribs is None or ribs.count <= 0:
        return vertices

    x, z = vertices[:, 0], vertices[:, 2]
    radius = np.hypot(x, z)

    normalized_angle = (np.arctan2(z, x) + np.pi) / (2 * np.pi)
    cycle = (normalized_angle * ribs.count) % 1.0

    offset = _rib_wave(cycle, ribs.width) * ribs.depth * 0.15

    # vertices on or near the axis keep their position
    new_radius = np.where(radius > 0.001, radius + offset, radius)
    _rescale_radius(vertices, new_radius)
    return vertices


def create_vase_geometry(audio_data, settings, noise_field):
    """Deform the lattice with (already smoothed) audio features and noise.

    Returns a TriangleMesh, or None when there is no audio data.
    """
    if not audio_data:
        return None

    vertices, faces = create_cylinder_lattice(
        settings.height, settings.base_radius, settings.top_radius,
        settings.radial_segments, settings.height_segments,
    )
    height = max(float(settings.height), MIN_HEIGHT)

    amplitudes = np.array([sample.amplitude for sample in audio_data], dtype=np.float64)
    centroids = np.array([sample.frequency_centroid for sample in audio_data], dtype=np.float64)

    x, y, z = vertices[:, 0], vertices[:, 1], vertices[:, 2]

    # nearest sample below, no interpolation between neighbours
    normalized_height = np.clip((y + height / 2) / height, 0.0, 1.0)
    index = np.floor(normalized_height * (len(audio_data) - 1)).astype(np.int64)
    index = np.clip(index, 0, len(audio_data) - 1)

    amplitude = amplitudes[index]
    frequency = centroids[index]

    angle = np.arctan2(z, x)
    radius = np.hypot(x, z)

    scale = settings.noise_scale
    noise_value = noise_field.noise(
        (angle * 2 + frequency * 0.001) * scale,
        normalized_height * 5 * scale,
        amplitude * 10 * scale,
    )

    new_radius = radius + amplitude * settings.amplitude_gain + noise_value * settings.noise_intensity
    _rescale_radius(vertices, new_radius)

    apply_ribs(vertices, settings.ribs)

    normals = compute_vertex_normals(vertices, faces)
    return TriangleMesh(vertices, normals, faces)
