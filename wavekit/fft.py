#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""
fft.py — 3-D spectral transforms between plane-wave and real space
=================================================================
Thin wrapper around `scipy.fft` fixing the conventions used everywhere in
WAVEKIT:

    inverse : ψ(r_j) = Σ_G C_G exp(i G·r_j)        (no 1/N factor)
    forward : C_G    = (1/N) Σ_j ψ(r_j) exp(−i G·r_j)

so that forward(inverse(C)) == C up to rounding.  The transforms act on the
last three axes, which lets spinor fields of shape (2, nx, ny, nz) go
through a single call.
"""

from __future__ import annotations

import numpy as np
import scipy.fft as sfft

from .errors import ZeroNormError

NORMALIZATIONS = ("none", "volume")

_AXES = (-3, -2, -1)


def inverse_transform(grid: np.ndarray, *, workers: int | None = None) -> np.ndarray:
    """Reciprocal-space grid → real-space samples."""
    return sfft.ifftn(grid, axes=_AXES, norm="forward", workers=workers)


def forward_transform(field: np.ndarray, *, workers: int | None = None) -> np.ndarray:
    """Real-space samples → reciprocal-space grid (exact inverse of `inverse_transform`)."""
    return sfft.fftn(field, axes=_AXES, norm="forward", workers=workers)


def cell_norm(field: np.ndarray, volume: float) -> float:
    """∫_cell |ψ|² dV ≈ Σ|ψ|² · V / N on the grid (summed over spinor components)."""
    npts = int(np.prod(field.shape[-3:]))
    return float(np.sum(np.abs(field) ** 2) * volume / npts)


def normalize_field(field: np.ndarray, volume: float, normalization: str = "volume") -> np.ndarray:
    """Apply the requested normalization; "volume" makes ∫_cell |ψ|² = 1."""
    if normalization not in NORMALIZATIONS:
        raise ValueError(f"normalization must be one of {NORMALIZATIONS}, got {normalization!r}")
    if normalization == "none":
        return field
    norm = cell_norm(field, volume)
    if not norm > 0.0:
        raise ZeroNormError(norm)
    return field / np.sqrt(norm)


__all__ = [
    "NORMALIZATIONS",
    "inverse_transform",
    "forward_transform",
    "cell_norm",
    "normalize_field",
]
