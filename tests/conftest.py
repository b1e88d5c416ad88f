"""Pytest configuration and shared fixtures."""

import io

import numpy as np
import pytest

from perlin_noise import NoiseField
from triangle_mesh import TriangleMesh
from vase_geometry import GenerationSettings

TEST_SR = 44100


@pytest.fixture
def sample_rate() -> int:
    """Default sample rate for tests."""
    return TEST_SR


@pytest.fixture
def silent_second(sample_rate: int) -> tuple[np.ndarray, int]:
    """One second of digital silence."""
    return np.zeros(sample_rate, dtype=np.float32), sample_rate


@pytest.fixture
def swelling_tone(sample_rate: int) -> tuple[np.ndarray, int]:
    """
    A 440Hz tone that fades in over one second.

    Returns:
        Tuple of (audio_signal, sample_rate).
    """
    t = np.linspace(0, 1.0, sample_rate, endpoint=False)
    y = np.linspace(0.0, 0.8, sample_rate) * np.sin(2 * np.pi * 440.0 * t)
    return y.astype(np.float32), sample_rate


@pytest.fixture
def wav_bytes(swelling_tone) -> bytes:
    """The swelling tone encoded as an in-memory WAV file."""
    import soundfile as sf

    y, sr = swelling_tone
    buffer = io.BytesIO()
    sf.write(buffer, y, sr, format="WAV")
    return buffer.getvalue()


@pytest.fixture
def temp_audio_file(tmp_path, wav_bytes):
    """The swelling tone written to a temporary WAV file."""
    audio_path = tmp_path / "tone.wav"
    audio_path.write_bytes(wav_bytes)
    return audio_path


@pytest.fixture
def noise_field() -> NoiseField:
    """Noise field with a fixed seed."""
    return NoiseField(seed=1234)


@pytest.fixture
def small_settings() -> GenerationSettings:
    """Coarse lattice so geometry tests stay fast."""
    return GenerationSettings(radial_segments=16, height_segments=12)


@pytest.fixture
def unit_triangle() -> TriangleMesh:
    """Single right triangle in the XY plane, facing +Z."""
    return TriangleMesh(
        positions=[[0, 0, 0], [1, 0, 0], [0, 1, 0]],
        normals=[[0, 0, 1]] * 3,
        indices=[[0, 1, 2]],
    )


@pytest.fixture
def unit_cube() -> TriangleMesh:
    """Closed unit cube spanning [0, 1] on every axis."""
    positions = np.array([
        [0, 0, 0], [1, 0, 0], [1, 1, 0], [0, 1, 0],
        [0, 0, 1], [1, 0, 1], [1, 1, 1], [0, 1, 1],
    ], dtype=float)
    faces = np.array([
        [0, 2, 1], [0, 3, 2],
        [4, 5, 6], [4, 6, 7],
        [0, 1, 5], [0, 5, 4],
        [2, 3, 7], [2, 7, 6],
        [1, 2, 6], [1, 6, 5],
        [0, 4, 7], [0, 7, 3],
    ])
    normals = positions - 0.5
    normals /= np.linalg.norm(normals, axis=1, keepdims=True)
    return TriangleMesh(positions, normals, faces)
