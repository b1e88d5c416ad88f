import argparse

from audio_analysis import EmptyInputError, analyze_audio_file, smooth_audio_data
from perlin_noise import NoiseField
from stl_io import load_stl, save_stl
from triangle_mesh import combine_with_base
from vase_geometry import GenerationSettings, create_vase_geometry

# Audio → Features: RMS loudness + brightness per 100ms segment
# Smoothing: light 3-tap filter so the wall doesn't jitter segment to segment
# Features → Mesh: loudness pushes the wall out, noise adds organic variation
# Optional base: an uploaded STL is scaled under the vase and merged in
# STL Export: ASCII (or binary) STL ready for slicing


class AudioVaseConverter:
    def __init__(self, audio_file, output_name="audio_vase", settings=None, seed=None):
        self.audio_file = audio_file
        self.output_name = output_name
        self.settings = settings or GenerationSettings()
        # one noise table per converter, reused when regenerating with new settings
        self.noise_field = NoiseField(seed)
        self.audio_data = None

    def load_and_analyze_audio(self):
        """Decode audio and extract per-segment features"""
        self.audio_data = analyze_audio_file(self.audio_file)
        return self.audio_data

    def generate_mesh(self, settings=None):
        """Build the vase mesh from the analysed audio"""
        settings = settings or self.settings
        if self.audio_data is None:
            self.load_and_analyze_audio()

        smoothed = smooth_audio_data(self.audio_data, settings.smoothing_factor)
        mesh = create_vase_geometry(smoothed, settings, self.noise_field)
        if mesh is None:
            raise EmptyInputError(f"No audio samples in {self.audio_file}")

        return mesh

    def attach_base(self, mesh, base_file, settings=None):
        """Stack the vase on a base loaded from STL (path or bytes)"""
        if base_file is None:
            return mesh
        base = load_stl(base_file)
        return combine_with_base(mesh, base, settings or self.settings)

    def generate_vase(self, base_file=None, filename=None, mode="ascii"):
        """Full pipeline: audio -> 3D vase -> STL"""
        print(f"Processing {self.audio_file}...")

        audio_data = self.load_and_analyze_audio()
        print(f"Analysed {len(audio_data)} segments")

        mesh = self.generate_mesh()
        mesh = self.attach_base(mesh, base_file)

        if filename is None:
            filename = f"{self.output_name}.stl"
        save_stl(mesh, filename, mode=mode)
        print(f"STL saved as {filename}")

        return filename, mesh


def main():
    parser = argparse.ArgumentParser(description="Turn an audio track into a printable vase")
    parser.add_argument("audio", help="input audio file (wav, mp3, flac, ogg)")
    parser.add_argument("-o", "--output", default=None, help="output STL path (default: <name>.stl)")
    parser.add_argument("--base", default=None, help="optional base STL to stand the vase on")
    parser.add_argument("--seed", type=int, default=None, help="noise seed for a reproducible surface")
    parser.add_argument("--binary", action="store_true", help="write binary instead of ASCII STL")
    parser.add_argument("--height", type=float, default=20.0)
    parser.add_argument("--base-radius", type=float, default=8.0)
    parser.add_argument("--top-radius", type=float, default=6.0)
    parser.add_argument("--gain", type=float, default=3.0, help="amplitude gain")
    parser.add_argument("--noise", type=float, default=1.2, help="noise intensity")
    parser.add_argument("--smoothing", type=float, default=0.2, help="smoothing factor (0-0.5)")
    args = parser.parse_args()

    settings = GenerationSettings(
        height=args.height,
        base_radius=args.base_radius,
        top_radius=args.top_radius,
        amplitude_gain=args.gain,
        noise_intensity=args.noise,
        smoothing_factor=args.smoothing,
    )

    converter = AudioVaseConverter(args.audio, settings=settings, seed=args.seed)
    stl_file, mesh = converter.generate_vase(
        base_file=args.base,
        filename=args.output,
        mode="binary" if args.binary else "ascii",
    )

    print(f"3D model ready: {stl_file}")
    print(f"Triangles: {mesh.triangle_count}, noise seed: {converter.noise_field.seed}")


if __name__ == "__main__":
    main()
