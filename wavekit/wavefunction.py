#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""
wavefunction.py — Real-space wavefunctions reconstructed from a WAVECAR
=======================================================================
Turns one decoded coefficient set into a dense real-space field and exposes
the local quantities derived from it.

Purpose
--------
•  Map the coefficients onto the FFT grid (`grid.to_grid`), run the inverse
   transform (`fft.inverse_transform`) and apply the requested
   normalization.
•  Keep the band metadata (spin, k-point, band, eigenvalue, cell volume)
   alongside the samples so writers can label their output.
•  Provide charge density, real and imaginary parts, and the spin-resolved
   variants for noncollinear bands.

Array shapes
------------
    standard      : complex (nx, ny, nz)
    gamma-half    : float   (nx, ny, nz)   (Hermitian reconstruction)
    noncollinear  : complex (2, nx, ny, nz) (up, down)

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

from dataclasses import dataclass, replace

import numpy as np

from .basis import Basis, WavecarType
from .fft import cell_norm, inverse_transform, normalize_field
from .grid import to_grid

_COMPONENTS = ("total", "up", "down")


def reconstruct(basis: Basis,
                coeffs: np.ndarray,
                ngrid,
                volume: float,
                normalization: str = "volume") -> np.ndarray:
    """Coefficients → real-space samples on `ngrid`."""
    field = inverse_transform(to_grid(basis, coeffs, ngrid))
    if basis.variant.is_gamma_half:
        # Hermitian input: the imaginary part is rounding noise
        field = np.ascontiguousarray(field.real)
    return normalize_field(field, volume, normalization)


@dataclass(eq=False)
class Wavefunction:
    """Real-space samples of one band together with their labels."""

    data: np.ndarray
    variant: WavecarType
    ispin: int
    ikpoint: int
    iband: int
    energy: float
    volume: float
    normalization: str = "volume"

    @property
    def ngrid(self) -> tuple[int, int, int]:
        return tuple(int(n) for n in self.data.shape[-3:])

    @property
    def npoints(self) -> int:
        return int(np.prod(self.ngrid))

    @property
    def is_spinor(self) -> bool:
        return self.variant is WavecarType.NONCOLLINEAR

    @property
    def is_real(self) -> bool:
        return not np.iscomplexobj(self.data)

    def norm(self) -> float:
        """∫_cell |ψ|² on the grid."""
        return cell_norm(self.data, self.volume)

    def normalized(self) -> "Wavefunction":
        return replace(self,
                       data=normalize_field(self.data, self.volume, "volume"),
                       normalization="volume")

    def component(self, which: str = "up") -> np.ndarray:
        """Single spinor component of a noncollinear band."""
        if not self.is_spinor:
            raise ValueError("spin components exist only for noncollinear wavefunctions")
        if which not in ("up", "down"):
            raise ValueError(f"spinor component must be 'up' or 'down', got {which!r}")
        return self.data[0 if which == "up" else 1]

    def density(self, component: str = "total") -> np.ndarray:
        """
        |ψ|² on the grid, non-negative.  For spinors `component` selects the
        summed density ("total") or a single spin channel ("up"/"down").
        """
        if component not in _COMPONENTS:
            raise ValueError(f"density component must be one of {_COMPONENTS}, got {component!r}")
        if component != "total":
            return np.abs(self.component(component)) ** 2
        rho = np.abs(self.data) ** 2
        return rho.sum(axis=0) if self.is_spinor else rho

    def real_part(self) -> np.ndarray:
        return np.real(self.data).copy()

    def imag_part(self) -> np.ndarray:
        if self.is_real:
            raise ValueError("gamma-half wavefunctions are real; there is no imaginary part")
        return np.imag(self.data).copy()


__all__ = ["reconstruct", "Wavefunction"]
