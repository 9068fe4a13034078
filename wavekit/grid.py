#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""
grid.py — Mapping plane-wave coefficients onto FFT grids
========================================================
Places the coefficients of one band onto a dense, zero-padded reciprocal
space grid ready for the inverse FFT.

•  Negative Miller indices wrap to the upper half of the index range
   (index = g mod n), matching the order used by `basis.fft_frequencies`.
•  Gamma-half bands are expanded with Hermitian symmetry, C(−G) = C(G)*,
   with the stored amplitudes divided by √2 everywhere except at the
   self-conjugate origin, which keeps its (real) stored value.
•  Noncollinear bands produce one grid per spinor component.

The grid must satisfy n_i ≥ 2·max|g_i| + 1 on every axis, otherwise +G and
−G would alias onto the same cell.
"""

from __future__ import annotations

import logging

import numpy as np

from .basis import Basis, WavecarType
from .errors import GridTooSmallError

logger = logging.getLogger(__name__)

_SQRT2 = np.sqrt(2.0)


def check_grid(ngrid, basis: Basis) -> tuple[int, int, int]:
    """Return `ngrid` as a tuple, or raise GridTooSmallError."""
    ngrid = tuple(int(n) for n in ngrid)
    if len(ngrid) != 3:
        raise ValueError(f"FFT grid needs 3 dimensions, got {ngrid}")
    minimum = basis.min_grid
    if any(n < m for n, m in zip(ngrid, minimum)):
        raise GridTooSmallError(ngrid, minimum)
    return ngrid


def resolve_grid(requested, basis: Basis, default, *, strict: bool = False) -> tuple[int, int, int]:
    """
    Choose the real-space grid for one reconstruction.

    requested : caller grid or None (→ `default`, twice the simulator grid)
    strict    : raise when `requested` is too small instead of enlarging it
    """
    if requested is None:
        requested = default
    try:
        return check_grid(requested, basis)
    except GridTooSmallError as err:
        if strict:
            raise
        fixed = tuple(max(n, m) for n, m in zip(err.requested, err.minimum))
        logger.warning("FFT grid %s too small for the basis, using %s instead",
                       err.requested, fixed)
        return fixed


def wrap_indices(gvecs: np.ndarray, ngrid) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Grid index arrays (ix, iy, iz) for Miller indices `gvecs`."""
    idx = np.mod(gvecs, np.asarray(ngrid, dtype=np.int64))
    return idx[:, 0], idx[:, 1], idx[:, 2]


def _fill_standard(gvecs, coeffs, ngrid) -> np.ndarray:
    grid = np.zeros(ngrid, dtype=np.complex128)
    grid[wrap_indices(gvecs, ngrid)] = coeffs
    return grid


def _fill_hermitian(gvecs, coeffs, ngrid) -> np.ndarray:
    grid = np.zeros(ngrid, dtype=np.complex128)
    plus = wrap_indices(gvecs, ngrid)
    minus = wrap_indices(-gvecs, ngrid)
    grid[minus] = np.conj(coeffs) / _SQRT2
    grid[plus] = coeffs / _SQRT2

    # points with −G ≡ G on the grid (the origin) are stored once, unscaled
    selfconj = np.all(np.column_stack(plus) == np.column_stack(minus), axis=1)
    if selfconj.any():
        sel = tuple(ax[selfconj] for ax in plus)
        grid[sel] = coeffs[selfconj].real
    return grid


def to_grid(basis: Basis, coeffs: np.ndarray, ngrid) -> np.ndarray:
    """
    Dense complex grid holding `coeffs` at the wrapped positions of `basis`.

    Returns shape `ngrid`, or (2, *ngrid) for noncollinear bands.
    """
    ngrid = check_grid(ngrid, basis)
    coeffs = np.asarray(coeffs, dtype=np.complex128)

    if basis.variant is WavecarType.NONCOLLINEAR:
        coeffs = coeffs.reshape(2, len(basis))
        return np.stack([_fill_standard(basis.gvecs, c, ngrid) for c in coeffs])

    if coeffs.shape != (len(basis),):
        raise ValueError(f"{coeffs.shape[0]} coefficients for a basis of {len(basis)} plane waves")
    if basis.variant.is_gamma_half:
        return _fill_hermitian(basis.gvecs, coeffs, ngrid)
    return _fill_standard(basis.gvecs, coeffs, ngrid)


__all__ = ["check_grid", "resolve_grid", "wrap_indices", "to_grid"]
