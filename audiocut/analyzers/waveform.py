"""Waveform envelope analyzer."""

import logging
from pathlib import Path

import numpy as np

from audiocut import ffutil

logger = logging.getLogger(__name__)

DEFAULT_SAMPLE_COUNT = 1000


def envelope(samples: np.ndarray, sample_count: int = DEFAULT_SAMPLE_COUNT) -> np.ndarray:
    """Reduce a sample stream to ``sample_count`` RMS values.

    ``samples`` is either mono ``(frames,)`` or interleaved ``(frames, channels)``;
    channels are averaged per frame before bucketing. Buckets are
    ``max(1, total // sample_count)`` frames wide, so the tail of the stream
    past ``sample_count * width`` is not represented, and when the stream is
    shorter than ``sample_count`` the trailing buckets are 0.
    """
    if sample_count < 1:
        raise ValueError(f"sample_count must be >= 1, got {sample_count}")

    mono = np.asarray(samples, dtype=np.float64)
    if mono.ndim > 1:
        mono = mono.mean(axis=1)

    total = mono.shape[0]
    result = np.zeros(sample_count, dtype=np.float64)
    if total == 0:
        return result

    width = max(1, total // sample_count)
    starts = np.arange(sample_count, dtype=np.int64) * width
    valid = starts < total
    starts = starts[valid]
    ends = np.minimum(starts + width, total)

    # Prefix sums of squared samples give each bucket's energy in O(1)
    energy = np.concatenate(([0.0], np.cumsum(mono * mono)))
    sums = np.maximum(energy[ends] - energy[starts], 0.0)
    result[valid] = np.sqrt(sums / (ends - starts))
    return result


def analyze(input_path: Path, sample_count: int = DEFAULT_SAMPLE_COUNT) -> np.ndarray:
    """Decode *input_path* and return its RMS envelope.

    Any failure to read or decode the file yields a flat envelope of zeros so
    callers always receive something renderable.
    """
    if sample_count < 1:
        raise ValueError(f"sample_count must be >= 1, got {sample_count}")

    try:
        samples, _ = ffutil.decode_pcm(input_path)
    except (FileNotFoundError, ffutil.ProbeError, ffutil.DecodeError) as e:
        logger.warning("Waveform unavailable for %s, using silence: %s", input_path, e)
        return np.zeros(sample_count, dtype=np.float64)

    return envelope(samples, sample_count)
