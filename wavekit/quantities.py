#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""
quantities.py — Derived quantities from decoded wavefunctions
=============================================================
Observables evaluated either on real-space fields or directly on the
plane-wave coefficients (no FFT needed).

Purpose
--------
•  Axis-integrated 1-D profiles of densities or raw amplitudes.
•  Momentum matrix elements ⟨ψ_j| k+G |ψ_i⟩ between bands at one k-point,
   and the transition dipole moments derived from them.
•  Gaussian-smeared absorption-like spectra Σ|μ_ij|² δ(E − ΔE_ij).
•  Static "model" non-adiabatic coupling input: band-window eigenvalues and
   momentum matrices replicated over a number of frozen ionic steps.

Key functions
--------------
- axis_profile(field, axis, kind)           : sum over the two orthogonal axes.
- momentum_matrix_element(wav, s, k, i, j)  : ⟨ψ_j|k+G|ψ_i⟩ in Å⁻¹ (×ħ).
- transition_dipole(p, de)                  : μ = −iħ p / (mₑ ΔE), in Debye.
- momentum_elements(wav, s, k, ib, jb)      : all meaningful (i, j) pairs.
- tdm_spectrum(elements, sigma, egrid)      : smeared Σ|μ|².
- elements_table(elements)                  : pandas DataFrame for output.
- model_coupling(wav, k, brange, nsteps)    : ModelCoupling arrays.

Notes
-----
Gamma-half coefficients only cover one hemisphere.  Expanding the sum over
the full sphere with C(−G) = C(G)*/√2 gives

    p = ½ Σ_half G [c_j* c_i − c_j c_i*]

which is what is evaluated, so no conjugate half is ever materialized.

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

import numpy as np
import pandas as pd

from .basis import cartesian_gk
from .constants import AU_TO_A, AUTDEBYE, RY_TO_EV
from .errors import InvalidPairError
from .geometry import axis_index
from .wavefunction import Wavefunction

logger = logging.getLogger(__name__)


# ----------------------------------------------------------------------
#  1-D profiles
# ----------------------------------------------------------------------
def axis_profile(field, axis="z", kind: str = "density", component: str = "total") -> np.ndarray:
    """
    One value per grid plane along `axis`, summed over the two other axes.

    field : Wavefunction or array whose last three axes are the grid
    kind  : "density" → |ψ|²; "raw" → the samples themselves
    """
    if kind not in ("density", "raw"):
        raise ValueError(f"profile kind must be 'density' or 'raw', got {kind!r}")
    if isinstance(field, Wavefunction):
        data = field.density(component) if kind == "density" else field.data
    else:
        data = np.abs(field) ** 2 if kind == "density" else np.asarray(field)
    ax = axis_index(axis) - 3
    others = tuple(a for a in (-3, -2, -1) if a != ax)
    return data.sum(axis=others)


# ----------------------------------------------------------------------
#  momentum & dipole matrix elements
# ----------------------------------------------------------------------
@dataclass(frozen=True, eq=False)
class MomentumElement:
    ispin: int
    ikpoint: int
    iband: int
    jband: int
    ei: float
    ej: float
    p: np.ndarray          # complex (3,), Å⁻¹
    tdm: np.ndarray        # complex (3,), Debye
    degenerate: bool = False   # ΔE = 0: tdm is undefined and stored as zeros

    @property
    def de(self) -> float:
        return self.ej - self.ei

    @property
    def tdm_sq(self) -> float:
        return float(np.sum(np.abs(self.tdm) ** 2))


def _momentum(gk: np.ndarray, ci: np.ndarray, cj: np.ndarray, gamma_half: bool) -> np.ndarray:
    if gamma_half:
        w = 0.5 * (np.conj(cj) * ci - cj * np.conj(ci))
        return w @ gk
    # spinor coefficients are (2, N): both components share the basis
    w = np.conj(cj) * ci
    if w.ndim == 2:
        w = w.sum(axis=0)
    return w @ gk


def momentum_matrix_element(wavecar, ispin: int, ikpoint: int, iband: int, jband: int) -> np.ndarray:
    """⟨ψ_j| k+G |ψ_i⟩ = Σ_G C_j* C_i (k+G)·2π·bcell, complex (3,) in Å⁻¹."""
    if jband <= iband:
        raise InvalidPairError(iband, jband)
    wavecar.check_indices(ispin, ikpoint, iband)
    wavecar.check_indices(ispin, ikpoint, jband)

    basis = wavecar.basis(ikpoint)
    ci = wavecar.read_coeffs(ispin, ikpoint, iband).coeffs
    cj = wavecar.read_coeffs(ispin, ikpoint, jband).coeffs
    gk = cartesian_gk(basis, wavecar.bcell)
    return _momentum(gk, ci, cj, basis.variant.is_gamma_half)


def transition_dipole(p: np.ndarray, de: float) -> np.ndarray:
    """μ_{i→j} = −iħ⟨ψ_j|p|ψ_i⟩ / (mₑ ΔE) in Debye, from p in Å⁻¹ and ΔE in eV."""
    if de == 0.0:
        raise ZeroDivisionError("degenerate bands: the dipole diverges for ΔE = 0")
    return -1j * np.asarray(p) * AU_TO_A * AUTDEBYE / (de / (2.0 * RY_TO_EV))


def momentum_elements(wavecar, ispin: int, ikpoint: int, ibands, jbands=None) -> list[MomentumElement]:
    """
    Momentum and dipole elements for every (i, j) in ibands × jbands.
    Pairs with j ≤ i are skipped with a warning; the rest of the batch goes on.
    Without `jbands`, every pair i < j inside `ibands` is taken.
    """
    eigs = wavecar.band_eigs[ispin, ikpoint]
    if jbands is None:
        bands = sorted(set(ibands))
        pairs = [(ib, jb) for n, ib in enumerate(bands) for jb in bands[n + 1:]]
    else:
        pairs = [(ib, jb) for ib in ibands for jb in jbands]
    out = []
    for ib, jb in pairs:
        try:
            p = momentum_matrix_element(wavecar, ispin, ikpoint, ib, jb)
        except InvalidPairError as err:
            logger.warning("skipped: %s", err)
            continue
        ei, ej = float(eigs[ib]), float(eigs[jb])
        try:
            tdm = transition_dipole(p, ej - ei)
        except ZeroDivisionError:
            logger.warning("bands %d and %d are degenerate, dipole stored as zero and flagged",
                           ib + 1, jb + 1)
            tdm, degenerate = np.zeros(3, dtype=complex), True
        else:
            degenerate = False
        out.append(MomentumElement(ispin=ispin, ikpoint=ikpoint, iband=ib, jband=jb,
                                   ei=ei, ej=ej, p=p, tdm=tdm, degenerate=degenerate))
    return out


def tdm_spectrum(elements, sigma: float = 0.05, egrid=None, npoints: int = 3000):
    """
    Gaussian-smeared Σ_ij |μ_ij|² δ(E − ΔE_ij).

    Returns (egrid, spectrum).  Without `egrid` the energy axis spans the
    transition energies padded by 10σ.
    """
    if sigma <= 0:
        raise ValueError(f"smearing width must be positive, got {sigma}")
    de = np.array([el.de for el in elements], dtype=float)
    weight = np.array([el.tdm_sq for el in elements], dtype=float)
    if egrid is None:
        lo = max(0.0, de.min() - 10 * sigma) if de.size else 0.0
        hi = de.max() + 10 * sigma if de.size else 1.0
        egrid = np.linspace(lo, hi, npoints)
    egrid = np.asarray(egrid, dtype=float)
    gauss = np.exp(-0.5 * ((egrid[:, None] - de[None, :]) / sigma) ** 2) / (sigma * np.sqrt(2 * np.pi))
    return egrid, gauss @ weight


def elements_table(elements) -> pd.DataFrame:
    """One row per pair, 1-based indices, |μ| components in Debye."""
    rows = []
    for el in elements:
        rows.append({
            "spin": el.ispin + 1, "kpoint": el.ikpoint + 1,
            "iband": el.iband + 1, "jband": el.jband + 1,
            "E_i": el.ei, "E_j": el.ej, "dE": el.de,
            "px": el.p[0], "py": el.p[1], "pz": el.p[2],
            "Tx": abs(el.tdm[0]), "Ty": abs(el.tdm[1]), "Tz": abs(el.tdm[2]),
            "|T|^2": el.tdm_sq,
            "degenerate": el.degenerate,
        })
    return pd.DataFrame(rows)


# ----------------------------------------------------------------------
#  model non-adiabatic coupling
# ----------------------------------------------------------------------
@dataclass(frozen=True, eq=False)
class ModelCoupling:
    ikpoint: int
    brange: tuple             # 0-based inclusive band window
    potim: float              # fs
    eigs: np.ndarray          # (nsteps, nspin, nb)
    pij: np.ndarray           # (nsteps, nspin, 3, nb, nb) complex
    olaps: np.ndarray         # (nsteps, nspin, nb, nb), zero: frozen ions

    def to_dict(self) -> dict:
        return {
            "ikpoint": self.ikpoint + 1,
            "brange": np.array(self.brange) + 1,
            "potim": self.potim,
            "nsw": self.eigs.shape[0],
            "eigs": self.eigs,
            "pij_r": self.pij.real,
            "pij_i": self.pij.imag,
            "olaps_r": self.olaps,
            "olaps_i": np.zeros_like(self.olaps),
        }


def model_coupling(wavecar, ikpoint: int, brange, nsteps: int = 9, potim: float = 1.0,
                   progress=None) -> ModelCoupling:
    """
    Eigenvalues and momentum matrices of bands brange[0]..brange[1]
    (0-based, inclusive) frozen over `nsteps` ionic steps.
    """
    bands = sorted({int(b) for b in brange})
    if len(bands) != 2:
        raise ValueError(f"band range needs two distinct band indices, got {list(brange)}")
    lo, hi = bands
    wavecar.check_indices(0, ikpoint, lo)
    wavecar.check_indices(0, ikpoint, hi)
    if nsteps < 1:
        raise ValueError(f"nsteps must be positive, got {nsteps}")

    nspin, nb = wavecar.nspin, hi - lo + 1
    eigs = np.asarray(wavecar.band_eigs[:, ikpoint, lo:hi + 1], dtype=float)
    pij = np.zeros((nspin, 3, nb, nb), dtype=complex)

    pairs = [(isp, i, j) for isp in range(nspin) for i in range(nb) for j in range(i + 1, nb)]
    for isp, i, j in (progress(pairs) if progress else pairs):
        p = momentum_matrix_element(wavecar, isp, ikpoint, lo + i, lo + j)
        pij[isp, :, j, i] = p
        pij[isp, :, i, j] = np.conj(p)

    return ModelCoupling(
        ikpoint=ikpoint, brange=(lo, hi), potim=float(potim),
        eigs=np.broadcast_to(eigs, (nsteps, nspin, nb)).copy(),
        pij=np.broadcast_to(pij, (nsteps, nspin, 3, nb, nb)).copy(),
        olaps=np.zeros((nsteps, nspin, nb, nb)),
    )


__all__ = [
    "axis_profile",
    "MomentumElement",
    "momentum_matrix_element",
    "transition_dipole",
    "momentum_elements",
    "tdm_spectrum",
    "elements_table",
    "ModelCoupling",
    "model_coupling",
]
