"""Tests for the end-to-end AudioVaseConverter pipeline."""

import numpy as np
import pytest

from audio_analysis import DecodeError, EmptyInputError
from converter import AudioVaseConverter
from stl_io import load_stl, save_stl
from vase_geometry import GenerationSettings


@pytest.fixture
def settings():
    return GenerationSettings(radial_segments=16, height_segments=10)


class TestAudioVaseConverter:
    """Tests for the audio -> vase -> STL pipeline."""

    def test_generate_vase_writes_stl(self, temp_audio_file, tmp_path, settings):
        converter = AudioVaseConverter(temp_audio_file, settings=settings, seed=5)
        output = tmp_path / "vase.stl"

        filename, mesh = converter.generate_vase(filename=output)

        assert filename == output
        assert output.read_bytes().startswith(b"solid")
        assert load_stl(output).triangle_count == mesh.triangle_count

    def test_default_filename_from_output_name(self, temp_audio_file, tmp_path, settings, monkeypatch):
        monkeypatch.chdir(tmp_path)
        converter = AudioVaseConverter(temp_audio_file, "my_vase", settings=settings)

        filename, _ = converter.generate_vase()

        assert filename == "my_vase.stl"
        assert (tmp_path / "my_vase.stl").exists()

    def test_analysis_feeds_mesh(self, temp_audio_file, settings):
        converter = AudioVaseConverter(temp_audio_file, settings=settings, seed=5)
        features = converter.load_and_analyze_audio()
        mesh = converter.generate_mesh()

        assert len(features) == 10
        assert mesh.vertex_count == 17 * 11

    def test_same_seed_is_reproducible(self, temp_audio_file, settings):
        a = AudioVaseConverter(temp_audio_file, settings=settings, seed=11).generate_mesh()
        b = AudioVaseConverter(temp_audio_file, settings=settings, seed=11).generate_mesh()

        assert np.array_equal(a.positions, b.positions)

    def test_regenerate_with_new_settings(self, temp_audio_file, settings):
        converter = AudioVaseConverter(temp_audio_file, settings=settings, seed=3)
        tall = converter.generate_mesh(GenerationSettings(height=40, radial_segments=16, height_segments=10))

        assert tall.positions[:, 1].max() == pytest.approx(20.0)

    def test_empty_audio_raises(self, temp_audio_file, settings):
        converter = AudioVaseConverter(temp_audio_file, settings=settings)
        converter.audio_data = []

        with pytest.raises(EmptyInputError):
            converter.generate_mesh()

    def test_undecodable_audio_raises(self, tmp_path, settings):
        bad = tmp_path / "noise.wav"
        bad.write_bytes(b"RIFF" + b"\xff" * 64)

        with pytest.raises(DecodeError):
            AudioVaseConverter(bad, settings=settings).generate_vase(filename=tmp_path / "x.stl")

    def test_vase_with_base(self, temp_audio_file, tmp_path, settings, unit_cube):
        base_path = save_stl(unit_cube, tmp_path / "base.stl", mode="binary")
        converter = AudioVaseConverter(temp_audio_file, settings=settings, seed=2)

        _, mesh = converter.generate_vase(base_file=base_path, filename=tmp_path / "stacked.stl")

        vase_vertices = 17 * 11
        assert mesh.vertex_count == vase_vertices + 36
        assert mesh.positions[:, 1].min() == pytest.approx(0.0)
        assert mesh.positions[:vase_vertices, 1].min() == pytest.approx(mesh.positions[vase_vertices:, 1].max())
