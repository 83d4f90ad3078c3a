"""Signal processing helpers for landmark time series.

This module is pure logic with NO I/O and NO OpenCV imports.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

import numpy as np
from numpy.typing import NDArray

FloatArray = NDArray[np.floating[Any]]


def moving_average(values: Sequence[float] | FloatArray, window_size: int = 3) -> FloatArray:
    """Centered moving average with a shrinking window at the edges.

    Args:
        values: Input signal
        window_size: Number of samples in the window

    Returns:
        Smoothed signal of the same length
    """
    data = np.asarray(values, dtype=np.float64)
    if data.size == 0 or window_size < 2:
        return data.copy()

    half = window_size // 2
    smoothed = np.empty_like(data)
    for i in range(data.size):
        start = max(0, i - half)
        end = min(data.size, i + half + 1)
        smoothed[i] = data[start:end].mean()
    return smoothed


def gradient(
    values: Sequence[float] | FloatArray,
    timestamps: Sequence[float] | FloatArray,
) -> FloatArray:
    """First derivative over possibly non-uniform timestamps.

    Wraps ``np.gradient`` with the timestamps as sample coordinates. A sample
    whose timestamp repeats the previous one (a clamped frame) takes the
    derivative of the first sample at that time.

    Args:
        values: Signal samples
        timestamps: Non-decreasing sample times in seconds

    Returns:
        Derivative per sample (units per second)
    """
    data = np.asarray(values, dtype=np.float64)
    times = np.asarray(timestamps, dtype=np.float64)
    n = data.size
    if n < 2:
        return np.zeros(n, dtype=np.float64)

    # np.gradient divides by zero on repeated coordinates
    distinct = np.concatenate(([True], np.diff(times) > 0))
    if np.count_nonzero(distinct) < 2:
        return np.zeros(n, dtype=np.float64)

    derivative = np.gradient(data[distinct], times[distinct])
    return derivative[np.cumsum(distinct) - 1]


def second_derivative(
    values: Sequence[float] | FloatArray,
    timestamps: Sequence[float] | FloatArray,
) -> FloatArray:
    """Second derivative as the gradient of the gradient."""
    return gradient(gradient(values, timestamps), timestamps)


def percentile(values: Sequence[float] | FloatArray, p: float) -> float:
    """Linearly interpolated percentile (0-100)."""
    data = np.asarray(values, dtype=np.float64)
    if data.size == 0:
        raise ValueError("percentile of empty signal")
    return float(np.percentile(data, p))


def dynamic_threshold(values: Sequence[float] | FloatArray, std_multiplier: float) -> float:
    """Noise-adaptive threshold: ``|std * multiplier|`` of the given samples."""
    data = np.asarray(values, dtype=np.float64)
    if data.size == 0:
        return 0.0
    return abs(float(np.std(data)) * std_multiplier)
