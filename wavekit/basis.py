#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""
basis.py — Plane-wave basis regeneration for WAVEKIT
====================================================
VASP does not store the G-vectors of a wavefunction in the WAVECAR; only the
coefficients are written, in the order in which the simulator enumerated its
basis.  This module regenerates that basis so that coefficient *i* of a
decoded band always belongs to Miller index *i* of the basis.

Purpose
--------
•  Enumerate every reciprocal-lattice vector G inside the FFT box whose
   kinetic energy ħ²|G + k|²/2mₑ lies below ENCUT, in VASP's order
   (z outermost, then y, x innermost).
•  Support the three WAVECAR flavours:
     – standard      (vasp_std, full sphere, complex coefficients)
     – gamma-half    (vasp_gam, one hemisphere along x or z)
     – noncollinear  (vasp_ncl, two spinor blocks over the standard basis)
•  Detect the flavour from the declared plane-wave count and refuse any
   basis whose size disagrees with the header.

Key functions
--------------
- fft_frequencies(n)          : VASP's wrap-around frequency order for one axis.
- default_ngrid(acell, encut) : Coarse FFT grid used by the simulator.
- generate_gvectors(...)      : Full cutoff sphere in enumeration order.
- filter_gamma_half(...)      : Half-space predicate for gamma-only files.
- generate_basis(...)         : Basis for one k-point and one WAVECAR type.
- determine_wavecar_type(...) : Infer the WAVECAR type from a plane-wave count.
- check_basis(...)            : Raise BasisMismatchError on size disagreement.

Notes
-----
The cutoff test is strict (E < ENCUT) and the G+k norm is evaluated with
bcell = inv(acell).T scaled by 2π, exactly as the simulator does.  The
half-space predicates were taken from VASP's gamma-only layout; there is no
y-direction gamma-half scheme in VASP.

Author:
    Chinedu E. Ekuma
    Department of Physics, Lehigh University, Bethlehem, PA, USA

Contributors:
    Chinedu E. Ekuma
    Chidiebere Nwaogbo

License:
    MIT License (see LICENSE file)

Version:
    1.0.0
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum

import numpy as np

from .constants import AU_TO_A, HBAR2D2ME, RY_TO_EV, TWO_PI
from .errors import BasisMismatchError

logger = logging.getLogger(__name__)


class WavecarType(Enum):
    """Storage layout of the band coefficients."""

    STANDARD     = "Standard"
    GAMMA_HALF_X = "GammaX"
    GAMMA_HALF_Z = "GammaZ"
    NONCOLLINEAR = "NonCollinear"

    def __str__(self) -> str:
        return self.value

    @property
    def is_gamma_half(self) -> bool:
        return self in (WavecarType.GAMMA_HALF_X, WavecarType.GAMMA_HALF_Z)

    @property
    def gamma_axis(self) -> str | None:
        return {WavecarType.GAMMA_HALF_X: "x",
                WavecarType.GAMMA_HALF_Z: "z"}.get(self)

    @classmethod
    def from_gamma_half(cls, axis: str) -> "WavecarType":
        a = str(axis).strip().lower()
        if a == "x":
            return cls.GAMMA_HALF_X
        if a == "z":
            return cls.GAMMA_HALF_Z
        if a == "y":
            raise ValueError("No y-direction gamma-half FFT scheme exists in VASP; use 'x' or 'z'.")
        raise ValueError(f"Unknown gamma-half direction {axis!r}; use 'x' or 'z'.")


@dataclass(frozen=True, eq=False)
class Basis:
    """Ordered Miller indices of one k-point, aligned with the stored coefficients."""

    gvecs: np.ndarray          # (N, 3) int64
    kvec: np.ndarray           # (3,) fractional
    variant: WavecarType

    def __len__(self) -> int:
        return int(self.gvecs.shape[0])

    @property
    def ncoeffs(self) -> int:
        """Number of complex values one band record holds for this basis."""
        n = len(self)
        return 2 * n if self.variant is WavecarType.NONCOLLINEAR else n

    @property
    def max_index(self) -> np.ndarray:
        if len(self) == 0:
            return np.zeros(3, dtype=np.int64)
        return np.abs(self.gvecs).max(axis=0)

    @property
    def min_grid(self) -> tuple[int, int, int]:
        """Smallest FFT grid that holds every G without aliasing."""
        return tuple(int(2 * m + 1) for m in self.max_index)


def cartesian_gk(basis: Basis, bcell: np.ndarray, *, with_k: bool = True) -> np.ndarray:
    """(G + k) · 2π·bcell, shape (N, 3), in Å⁻¹."""
    g = basis.gvecs.astype(float)
    if with_k:
        g = g + np.asarray(basis.kvec, dtype=float)
    return TWO_PI * g @ np.asarray(bcell, dtype=float)


# ----------------------------------------------------------------------
#  FFT box
# ----------------------------------------------------------------------
def fft_frequencies(n: int) -> np.ndarray:
    """
    VASP frequency order along one axis:
        [0, 1, …, n//2, 1+n//2-n, …, -1]
    e.g. n = 11 → [0 1 2 3 4 5 -5 -4 -3 -2 -1],
         n = 10 → [0 1 2 3 4 5 -4 -3 -2 -1]   (differs from numpy.fft.fftfreq)
    """
    n = int(n)
    return np.concatenate((np.arange(0, n // 2 + 1),
                           np.arange(1 + n // 2 - n, 0))).astype(np.int64)


def default_ngrid(acell: np.ndarray, encut: float) -> tuple[int, int, int]:
    """Coarse FFT grid (NGX, NGY, NGZ) spanned by the cutoff sphere."""
    anorm = np.linalg.norm(np.asarray(acell, dtype=float), axis=1)
    cutof = np.ceil(np.sqrt(encut / RY_TO_EV) / (TWO_PI / (anorm / AU_TO_A)))
    return tuple(int(v) for v in (2 * cutof + 1))


def generate_gvectors(ngrid, kvec, bcell, encut: float) -> np.ndarray:
    """
    All G inside the FFT box with ħ²|G+k|²/2mₑ < ENCUT, as an (N, 3) int array
    in enumeration order: z outermost, y, x innermost.
    """
    fx, fy, fz = (fft_frequencies(n) for n in ngrid)
    gz, gy, gx = np.meshgrid(fz, fy, fx, indexing="ij")
    gvecs = np.column_stack((gx.ravel(), gy.ravel(), gz.ravel()))

    gk = gvecs + np.asarray(kvec, dtype=float)
    ekin = HBAR2D2ME * np.sum((TWO_PI * gk @ np.asarray(bcell, dtype=float)) ** 2, axis=1)
    return gvecs[ekin < encut].astype(np.int64)


def filter_gamma_half(gvecs: np.ndarray, axis: str) -> np.ndarray:
    """Keep the hemisphere VASP stores for gamma-only runs along `axis`."""
    gx, gy, gz = gvecs[:, 0], gvecs[:, 1], gvecs[:, 2]
    if axis == "x":
        keep = (gx > 0) | ((gx == 0) & (gy > 0)) | ((gx == 0) & (gy == 0) & (gz >= 0))
    elif axis == "z":
        keep = (gz > 0) | ((gz == 0) & (gy > 0)) | ((gz == 0) & (gy == 0) & (gx >= 0))
    else:
        # raises with the proper message for 'y' and anything else
        return filter_gamma_half(gvecs, WavecarType.from_gamma_half(axis).gamma_axis)
    return gvecs[keep]


def generate_basis(kvec, encut: float, bcell, ngrid,
                   variant: WavecarType = WavecarType.STANDARD) -> Basis:
    """
    Regenerate the ordered basis of one k-point.  A pure function of
    (bcell, encut, kvec, ngrid, variant).
    """
    kvec = np.asarray(kvec, dtype=float).reshape(3)
    gvecs = generate_gvectors(ngrid, kvec, bcell, encut)
    if variant.is_gamma_half:
        gvecs = filter_gamma_half(gvecs, variant.gamma_axis)
    return Basis(gvecs=gvecs, kvec=kvec, variant=variant)


def check_basis(basis: Basis, nplw: int, ikpoint: int = 0) -> Basis:
    """Return `basis` unchanged, or raise if it cannot hold `nplw` coefficients."""
    if basis.ncoeffs != int(nplw):
        raise BasisMismatchError(ikpoint, int(nplw), basis.ncoeffs, str(basis.variant))
    return basis


def determine_wavecar_type(ngrid, kvec, bcell, encut: float, nplw: int) -> WavecarType:
    """
    Infer the WAVECAR type from the declared plane-wave count of one k-point.
    At Γ the x- and z-halves always have the same size; x wins, as in VASP's
    default gamma-only layout.
    """
    gvecs = generate_gvectors(ngrid, kvec, bcell, encut)
    nplw = int(nplw)
    if nplw == len(gvecs):
        return WavecarType.STANDARD
    if nplw == 2 * len(gvecs):
        return WavecarType.NONCOLLINEAR
    if nplw == len(filter_gamma_half(gvecs, "x")):
        return WavecarType.GAMMA_HALF_X
    if nplw == len(filter_gamma_half(gvecs, "z")):
        return WavecarType.GAMMA_HALF_Z
    raise BasisMismatchError(
        0, nplw, len(gvecs),
        message=(f"unknown WAVECAR type: {nplw} plane waves declared, full sphere "
                 f"has {len(gvecs)}, x-half {len(filter_gamma_half(gvecs, 'x'))}, "
                 f"z-half {len(filter_gamma_half(gvecs, 'z'))}"),
    )


def validate_wavecar_type(variant: WavecarType, ngrid, kvec, bcell,
                          encut: float, nplw: int) -> None:
    """Raise BasisMismatchError if `variant` cannot reproduce `nplw`."""
    basis = generate_basis(kvec, encut, bcell, ngrid, variant)
    if basis.ncoeffs == int(nplw):
        return
    try:
        suggested = str(determine_wavecar_type(ngrid, kvec, bcell, encut, nplw))
    except BasisMismatchError:
        suggested = "none"
    raise BasisMismatchError(
        0, int(nplw), basis.ncoeffs, str(variant),
        message=f"unmatched WAVECAR type {variant}, suggested: {suggested}",
    )


__all__ = [
    "WavecarType",
    "Basis",
    "cartesian_gk",
    "fft_frequencies",
    "default_ngrid",
    "generate_gvectors",
    "filter_gamma_half",
    "generate_basis",
    "check_basis",
    "determine_wavecar_type",
    "validate_wavecar_type",
]
