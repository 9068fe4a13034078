#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""
gap.py — Band-edge and band-gap detection for WAVEKIT
=====================================================
Classifies every spin channel of a calculation as metal, direct-gap or
indirect-gap from the eigenvalues and occupation numbers stored per
(spin, k-point, band).

Algorithm
---------
1. Occupations are divided by the nominal full occupation (the largest value
   present), so files storing 0…1 and 0…2 behave alike.
2. A band is occupied when f > threshold (0.5).
3. Metal if any band is partially occupied (partial_tol < f < 1 − partial_tol),
   if the number of occupied bands differs between k-points, or if the
   highest occupied eigenvalue (VBM) is not below the lowest unoccupied one
   (CBM).
4. Otherwise Direct when VBM and CBM sit at the same k-point, else Indirect;
   gap = E_CBM − E_VBM.

The same `BandData` container is filled from the WAVECAR band-info records
(`Wavecar.band_data`) or from an EIGENVAL file (`io.eigen_readers`).

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

logger = logging.getLogger(__name__)


class GapKind(Enum):
    METAL    = "Metal"
    DIRECT   = "Direct"
    INDIRECT = "Indirect"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True, eq=False)
class BandData:
    """Eigenvalues and occupations, shape (nspin, nkpoints, nbands)."""

    energies: np.ndarray
    occupations: np.ndarray
    kvecs: np.ndarray
    weights: np.ndarray | None = None
    efermi: float | None = None

    def __post_init__(self):
        if self.energies.ndim != 3 or self.energies.shape != self.occupations.shape:
            raise ValueError(
                f"energies {self.energies.shape} and occupations {self.occupations.shape} "
                "must share the shape (nspin, nkpoints, nbands)"
            )
        if self.kvecs.shape != (self.energies.shape[1], 3):
            raise ValueError(f"kvecs must have shape ({self.energies.shape[1]}, 3), got {self.kvecs.shape}")

    @property
    def nspin(self) -> int:
        return int(self.energies.shape[0])

    @property
    def nkpoints(self) -> int:
        return int(self.energies.shape[1])

    @property
    def nbands(self) -> int:
        return int(self.energies.shape[2])


@dataclass(frozen=True)
class BandEdge:
    ikpoint: int
    iband: int
    energy: float
    kvec: tuple


@dataclass(frozen=True)
class GapResult:
    ispin: int
    kind: GapKind
    gap: float
    vbm: BandEdge | None = None
    cbm: BandEdge | None = None

    @property
    def is_metal(self) -> bool:
        return self.kind is GapKind.METAL


def _edge(bands: BandData, ispin, ik, ib) -> BandEdge:
    return BandEdge(ikpoint=int(ik), iband=int(ib),
                    energy=float(bands.energies[ispin, ik, ib]),
                    kvec=tuple(float(x) for x in bands.kvecs[ik]))


def _metal(ispin: int, why: str) -> GapResult:
    logger.debug("spin %d classified as metal: %s", ispin, why)
    return GapResult(ispin=ispin, kind=GapKind.METAL, gap=0.0)


def find_gap(bands: BandData, ispin: int, threshold: float = 0.5,
             partial_tol: float = 0.01) -> GapResult:
    """Classify one spin channel."""
    occ = np.asarray(bands.occupations[ispin], dtype=float)
    eig = np.asarray(bands.energies[ispin], dtype=float)

    full = float(np.max(np.abs(bands.occupations)))
    if full <= 0.0:
        raise ValueError("no occupied bands: every occupation number is zero")
    occ = occ / full

    if np.any((occ > partial_tol) & (occ < 1.0 - partial_tol)):
        return _metal(ispin, "partially occupied bands")

    occupied = occ > threshold
    nocc = occupied.sum(axis=1)
    if np.any(nocc != nocc[0]):
        return _metal(ispin, f"occupied band count varies over k-points ({nocc.min()}..{nocc.max()})")
    if nocc[0] == 0 or nocc[0] == bands.nbands:
        raise ValueError(
            f"spin {ispin}: {int(nocc[0])} of {bands.nbands} bands occupied, "
            "cannot locate both band edges"
        )

    vb = np.where(occupied, eig, -np.inf)
    cb = np.where(occupied, np.inf, eig)
    ikv, ibv = np.unravel_index(np.argmax(vb), vb.shape)
    ikc, ibc = np.unravel_index(np.argmin(cb), cb.shape)
    vbm, cbm = _edge(bands, ispin, ikv, ibv), _edge(bands, ispin, ikc, ibc)

    if vbm.energy >= cbm.energy:
        return _metal(ispin, f"VBM {vbm.energy:.4f} eV ≥ CBM {cbm.energy:.4f} eV")

    kind = GapKind.DIRECT if ikv == ikc else GapKind.INDIRECT
    return GapResult(ispin=ispin, kind=kind, gap=cbm.energy - vbm.energy, vbm=vbm, cbm=cbm)


def find_gaps(bands: BandData, threshold: float = 0.5,
              partial_tol: float = 0.01) -> list[GapResult]:
    """One GapResult per spin channel."""
    return [find_gap(bands, isp, threshold, partial_tol) for isp in range(bands.nspin)]


def format_gaps(results: list[GapResult]) -> str:
    """Human-readable report (1-based k-point and band numbers)."""
    spin_ud = ("SPIN UP", "SPIN DOWN")
    lines = ["-" * 80]
    for res in results:
        if len(results) > 1:
            lines.append(f"    ====================  Gap Info For {spin_ud[res.ispin]:^15}  ====================")
        if res.is_metal:
            lines.append(f" Current system is {'Metal':^20}")
            continue
        lines.append(f" Current system has {res.kind.value + ' Gap':^16} of {res.gap:^10.3f} eV")
        for name, edge in (("CBM", res.cbm), ("VBM", res.vbm)):
            kx, ky, kz = edge.kvec
            lines.append(
                f"  {name} @ k-point {edge.ikpoint + 1:5d} of ({kx:6.3f},{ky:6.3f},{kz:6.3f}) , "
                f"band {edge.iband + 1:5d} of {edge.energy:8.3f} eV"
            )
    lines.append("-" * 80)
    return "\n".join(lines)


__all__ = [
    "GapKind",
    "BandData",
    "BandEdge",
    "GapResult",
    "find_gap",
    "find_gaps",
    "format_gaps",
]
