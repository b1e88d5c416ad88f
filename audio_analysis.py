import io
from dataclasses import dataclass, replace

import numpy as np
import librosa
from scipy import ndimage

# Audio → Features: decodes an audio file into mono samples
# Segmenting: slices the signal into fixed 100ms windows
# Per-segment features: RMS loudness + a cheap brightness (centroid) proxy
# Smoothing: 3-tap low-pass over the loudness channel

SEGMENT_DURATION = 0.1  # seconds per analysis window


class DecodeError(ValueError):
    """Audio bytes could not be decoded into samples"""


class EmptyInputError(ValueError):
    """No audio (or no features) to build a vase from"""


@dataclass(frozen=True)
class AudioFeatureSample:
    """One analysis window: loudness, brightness and start time"""

    amplitude: float
    frequency_centroid: float
    time: float


def load_audio(source):
    """Decode a path or raw bytes into a mono float buffer at its native rate"""
    if isinstance(source, (bytes, bytearray)):
        source = io.BytesIO(source)

    try:
        y, sr = librosa.load(source, sr=None, mono=True)
    except FileNotFoundError:
        raise
    except Exception as e:
        raise DecodeError(f"Could not decode audio: {e}") from e

    return y, sr


def _spectral_centroid(segment, sample_rate):
    """Magnitude-weighted mean of the sample-index frequency proxy"""
    n = len(segment)
    magnitude = np.abs(segment)
    total = np.sum(magnitude)
    if total <= 0:
        return 0.0

    # sample index stands in for an FFT bin, scaled to nyquist
    freqs = (np.arange(n) / n) * (sample_rate / 2)
    return float(np.sum(freqs * magnitude) / total)


def analyze_samples(samples, sample_rate, segment_duration=SEGMENT_DURATION):
    """Slice a mono buffer into windows and extract per-window features"""
    samples = np.asarray(samples, dtype=np.float64).ravel()
    segment_samples = max(1, int(segment_duration * sample_rate))

    features = []
    for i, start in enumerate(range(0, len(samples), segment_samples)):
        # the trailing partial window is kept and analysed over what remains
        segment = samples[start:start + segment_samples]

        features.append(AudioFeatureSample(
            amplitude=float(np.sqrt(np.mean(segment ** 2))),
            frequency_centroid=_spectral_centroid(segment, sample_rate),
            time=i * segment_duration,
        ))

    return features


def analyze_audio_file(source, segment_duration=SEGMENT_DURATION):
    """Decode an audio file (path or bytes) and return its feature sequence"""
    y, sr = load_audio(source)
    return analyze_samples(y, sr, segment_duration)


def smooth_audio_data(features, smoothing):
    """Single-pass 3-tap filter on amplitude; endpoints pass through untouched"""
    if smoothing == 0 or len(features) < 3:
        return list(features)

    amplitudes = np.array([sample.amplitude for sample in features], dtype=np.float64)
    weights = [smoothing, 1 - 2 * smoothing, smoothing]
    filtered = ndimage.correlate1d(amplitudes, weights, mode='nearest')

    smoothed = [features[0]]
    for sample, amplitude in zip(features[1:-1], filtered[1:-1]):
        smoothed.append(replace(sample, amplitude=float(amplitude)))
    smoothed.append(features[-1])

    return smoothed
