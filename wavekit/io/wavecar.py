#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""
wavecar.py — Direct-access WAVECAR reader for WAVEKIT
=====================================================
Binary reader for the VASP plane-wave wavefunction file.  Every read is a
positioned (seek + read) access guarded by a lock, so one `Wavecar` can
serve concurrent decodes from several threads; processes open their own.

File layout (little endian, fixed record length)
-------------------------------------------------
    record 0 : [record_len, nspin, rtag]                          float64
    record 1 : [nkpts, nbands, encut, acell(3×3), efermi]         float64
    per spin, per k-point:
        band-info record : [nplw, kx, ky, kz, (E_re, E_im, occ) × nbands]
        nbands band records, each nplw complex coefficients
            rtag 45200 → complex64, rtag 45210 → complex128

    band-info record index = 2 + isp·nk·(nb+1) + ik·(nb+1)
    band record index      = band-info index + ib + 1
    byte offset            = record index × record_len

Major components
----------------
- read_header / read_band_info : parse the prologue into `WavecarHeader`
  and the `KPoint` list, raising `FormatError` on anything malformed.
- Wavecar : file handle + metadata; detects the WAVECAR type (standard,
  gamma-half x/z, noncollinear), regenerates and caches the basis of each
  k-point, decodes coefficient sets and reconstructs real-space
  wavefunctions.

Usage
------
```python
from wavekit.io import Wavecar

with Wavecar("WAVECAR") as wav:
    cs = wav.read_coeffs(ispin=0, ikpoint=0, iband=3)
    wf = wav.get_wavefunction_realspace(0, 0, 3)
    rho = wf.density()
```

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
import os
import threading
from dataclasses import dataclass, replace

import numpy as np
import pandas as pd

from ..basis import (
    Basis,
    WavecarType,
    check_basis,
    default_ngrid,
    determine_wavecar_type,
    generate_basis,
    validate_wavecar_type,
)
from ..constants import RTAG_DOUBLE, RTAG_SINGLE, TWO_PI
from ..errors import FormatError, WavecarIndexError
from ..gap import BandData
from ..grid import resolve_grid
from ..wavefunction import Wavefunction, reconstruct

logger = logging.getLogger(__name__)

_F8 = np.dtype("<f8")
_COEFF_DTYPES = {
    RTAG_SINGLE: np.dtype("<c8"),
    RTAG_DOUBLE: np.dtype("<c16"),
}


###############################################################################
# HEADER
###############################################################################
@dataclass(frozen=True, eq=False)
class WavecarHeader:
    """Fixed prologue of a WAVECAR (records 0 and 1)."""

    record_len: int            # bytes
    rtag: int
    nspin: int
    nkpoints: int
    nbands: int
    encut: float               # eV
    efermi: float              # eV
    acell: np.ndarray          # rows are a1, a2, a3 in Å
    bcell: np.ndarray          # inv(acell).T, no 2π
    volume: float              # Å³
    ngrid: tuple               # simulator's coarse FFT grid

    @property
    def precision(self) -> str:
        return "single" if self.rtag == RTAG_SINGLE else "double"

    @property
    def coeff_dtype(self) -> np.dtype:
        return _COEFF_DTYPES[self.rtag]

    @property
    def recip_lattice(self) -> np.ndarray:
        return TWO_PI * self.bcell


@dataclass(frozen=True, eq=False)
class KPoint:
    index: int
    kvec: np.ndarray           # fractional
    nplw: int                  # declared coefficient count of one band record
    weight: float


@dataclass(frozen=True, eq=False)
class CoefficientSet:
    """Decoded coefficients of one band; (N,) or (2, N) for spinors."""

    ispin: int
    ikpoint: int
    iband: int
    coeffs: np.ndarray
    variant: WavecarType

    @property
    def is_spinor(self) -> bool:
        return self.variant is WavecarType.NONCOLLINEAR

    def __len__(self) -> int:
        return int(self.coeffs.shape[-1])


def band_info_record(ispin: int, ikpoint: int, nkpoints: int, nbands: int) -> int:
    return 2 + ispin * nkpoints * (nbands + 1) + ikpoint * (nbands + 1)


def band_record(ispin: int, ikpoint: int, iband: int, nkpoints: int, nbands: int) -> int:
    return band_info_record(ispin, ikpoint, nkpoints, nbands) + iband + 1


def _read_exact(fh, offset: int, nbytes: int, what: str) -> bytes:
    fh.seek(offset)
    buf = fh.read(nbytes)
    if len(buf) < nbytes:
        raise FormatError(
            f"WAVECAR truncated in {what}: expected {nbytes} bytes, got {len(buf)}", offset
        )
    return buf


def read_header(fh) -> WavecarHeader:
    """Parse records 0 and 1 from a binary file object."""
    recl, nspin, rtag = np.frombuffer(_read_exact(fh, 0, 3 * 8, "the first record"), dtype=_F8)

    if not np.isfinite(recl) or recl <= 0:
        raise FormatError(f"non-positive record length {recl}", 0)
    record_len = int(recl)
    if record_len < 13 * 8:
        raise FormatError(f"record length {record_len} cannot hold the header", 0)
    rtag = int(rtag) if np.isfinite(rtag) else -1
    if rtag not in _COEFF_DTYPES:
        raise FormatError(
            f"unknown precision tag {rtag}, expected {RTAG_SINGLE} (single) or {RTAG_DOUBLE} (double)", 16
        )
    if nspin not in (1.0, 2.0):
        raise FormatError(f"invalid spin count {nspin}, expected 1 or 2", 8)

    rec1 = np.frombuffer(_read_exact(fh, record_len, 13 * 8, "the second record"), dtype=_F8)
    if not np.all(np.isfinite(rec1)):
        raise FormatError("non-finite values in the second header record", record_len)
    nkpoints, nbands = int(rec1[0]), int(rec1[1])
    if nkpoints <= 0 or nbands <= 0:
        raise FormatError(f"invalid dimensions: {nkpoints} k-points, {nbands} bands", record_len)
    encut = float(rec1[2])
    acell = rec1[3:12].reshape(3, 3).copy()
    efermi = float(rec1[12])

    det = float(np.linalg.det(acell))
    if abs(det) < 1e-8:
        raise FormatError("lattice vectors are linearly dependent", record_len + 3 * 8)
    if (4 + 3 * nbands) * 8 > record_len:
        raise FormatError(
            f"record length {record_len} cannot hold the band info of {nbands} bands", 0
        )

    return WavecarHeader(
        record_len=record_len,
        rtag=rtag,
        nspin=int(nspin),
        nkpoints=nkpoints,
        nbands=nbands,
        encut=encut,
        efermi=efermi,
        acell=acell,
        bcell=np.linalg.inv(acell).T,
        volume=abs(det),
        ngrid=default_ngrid(acell, encut),
    )


def read_band_info(fh, header: WavecarHeader):
    """
    Read every band-info record.

    Returns (kpoints, energies, occupations) with energies/occupations of
    shape (nspin, nkpoints, nbands).
    """
    nsp, nk, nb = header.nspin, header.nkpoints, header.nbands
    eigs = np.zeros((nsp, nk, nb))
    occs = np.zeros((nsp, nk, nb))
    nplws = np.zeros(nk, dtype=int)
    kvecs = np.zeros((nk, 3))
    itemsize = header.coeff_dtype.itemsize

    for isp in range(nsp):
        for ik in range(nk):
            offset = band_info_record(isp, ik, nk, nb) * header.record_len
            block = np.frombuffer(
                _read_exact(fh, offset, (4 + 3 * nb) * 8, f"band info (spin {isp}, k-point {ik})"),
                dtype=_F8,
            )
            nplw = int(block[0])
            if isp == 0:
                if nplw <= 0:
                    raise FormatError(f"k-point {ik} declares {nplw} plane waves", offset)
                if nplw * itemsize > header.record_len:
                    raise FormatError(
                        f"record length {header.record_len} cannot hold {nplw} "
                        f"{header.precision}-precision coefficients (k-point {ik})", offset
                    )
                nplws[ik] = nplw
                kvecs[ik] = block[1:4]
            elif nplw != nplws[ik]:
                logger.warning("spin %d, k-point %d declares %d plane waves, spin 0 declares %d",
                               isp, ik, nplw, nplws[ik])
            band = block[4:].reshape(nb, 3)
            eigs[isp, ik] = band[:, 0]
            occs[isp, ik] = band[:, 2]

    weight = 1.0 / nk
    kpoints = [KPoint(index=ik, kvec=kvecs[ik].copy(), nplw=int(nplws[ik]), weight=weight)
               for ik in range(nk)]
    return kpoints, eigs, occs


###############################################################################
# WAVECAR READER
###############################################################################
class Wavecar:
    """
    Read-only view of a WAVECAR file.

    wavecar    : path to the file
    gamma_half : None → detect the type from the first k-point;
                 'x' or 'z' → force the gamma-half layout (validated)
    """

    def __init__(self, wavecar="WAVECAR", gamma_half: str | None = None):
        self.wavecar = os.fspath(wavecar)
        if not os.path.isfile(self.wavecar):
            raise FileNotFoundError(f"[Wavecar] File not found: {self.wavecar}")

        self._fh = open(self.wavecar, "rb")
        self._lock = threading.Lock()
        self._bases: dict[int, Basis] = {}
        try:
            self.header = read_header(self._fh)
            self.kpoints, self._eigs, self._occs = read_band_info(self._fh, self.header)
            k0 = self.kpoints[0]
            if gamma_half is None:
                self._type = determine_wavecar_type(
                    self.ngrid, k0.kvec, self.bcell, self.encut, k0.nplw)
            else:
                self._type = WavecarType.from_gamma_half(gamma_half)
                validate_wavecar_type(self._type, self.ngrid, k0.kvec, self.bcell,
                                      self.encut, k0.nplw)
        except Exception:
            self.close()          # prevent handle leak
            raise

        logger.debug("[Wavecar] LOADED %s => nspin=%d, nkpts=%d, nbands=%d, encut=%.3f, "
                     "rtag=%d, type=%s", self.wavecar, self.nspin, self.nkpoints,
                     self.nbands, self.encut, self.header.rtag, self._type)

    # ------------------------------------------------------------------
    #  lifecycle
    # ------------------------------------------------------------------
    def close(self):
        fh = getattr(self, "_fh", None)
        if fh is not None and not fh.closed:
            fh.close()

    def __del__(self):
        self.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()

    # ------------------------------------------------------------------
    #  metadata
    # ------------------------------------------------------------------
    nspin    = property(lambda self: self.header.nspin)
    nkpoints = property(lambda self: self.header.nkpoints)
    nbands   = property(lambda self: self.header.nbands)
    encut    = property(lambda self: self.header.encut)
    efermi   = property(lambda self: self.header.efermi)
    acell    = property(lambda self: self.header.acell)
    bcell    = property(lambda self: self.header.bcell)
    volume   = property(lambda self: self.header.volume)
    ngrid    = property(lambda self: self.header.ngrid)

    @property
    def wavecar_type(self) -> WavecarType:
        return self._type

    @property
    def default_fine_grid(self) -> tuple[int, int, int]:
        """Real-space grid used when the caller gives none: twice the coarse grid."""
        return tuple(2 * n for n in self.ngrid)

    @property
    def band_eigs(self) -> np.ndarray:
        return self._eigs

    @property
    def band_occs(self) -> np.ndarray:
        return self._occs

    @property
    def kvecs(self) -> np.ndarray:
        return np.array([kp.kvec for kp in self.kpoints])

    @property
    def nplws(self) -> np.ndarray:
        return np.array([kp.nplw for kp in self.kpoints], dtype=int)

    def set_wavecar_type(self, variant: WavecarType) -> None:
        """Override the detected type; raises BasisMismatchError if it cannot fit."""
        k0 = self.kpoints[0]
        validate_wavecar_type(variant, self.ngrid, k0.kvec, self.bcell, self.encut, k0.nplw)
        if variant is not self._type:
            self._bases.clear()
        self._type = variant

    def set_kpoint_weights(self, weights) -> None:
        weights = np.asarray(weights, dtype=float).ravel()
        if weights.size != self.nkpoints:
            raise ValueError(f"{weights.size} weights for {self.nkpoints} k-points")
        self.kpoints = [replace(kp, weight=float(w)) for kp, w in zip(self.kpoints, weights)]

    # ------------------------------------------------------------------
    #  basis & coefficients
    # ------------------------------------------------------------------
    def check_indices(self, ispin: int, ikpoint: int, iband: int | None = None) -> None:
        for name, idx, bound in (("spin", ispin, self.nspin),
                                 ("k-point", ikpoint, self.nkpoints),
                                 ("band", iband, self.nbands)):
            if idx is None:
                continue
            if not 0 <= int(idx) < bound:
                raise WavecarIndexError(name, int(idx), bound)

    def basis(self, ikpoint: int) -> Basis:
        """Regenerated (and size-checked) basis of one k-point, cached."""
        self.check_indices(0, ikpoint)
        basis = self._bases.get(ikpoint)
        if basis is None:
            kp = self.kpoints[ikpoint]
            basis = check_basis(
                generate_basis(kp.kvec, self.encut, self.bcell, self.ngrid, self._type),
                kp.nplw, ikpoint,
            )
            self._bases[ikpoint] = basis
        return basis

    def verify_bases(self, ikpoints=None) -> None:
        """Regenerate the basis of every listed k-point; raises BasisMismatchError."""
        for ik in (range(self.nkpoints) if ikpoints is None else ikpoints):
            self.basis(ik)

    def _read_at(self, offset: int, nbytes: int, what: str) -> bytes:
        with self._lock:
            if self._fh.closed:
                raise ValueError(f"[Wavecar] {self.wavecar} is closed")
            return _read_exact(self._fh, offset, nbytes, what)

    def read_raw(self, ispin: int, ikpoint: int, iband: int) -> np.ndarray:
        """Stored coefficients of one band record upcast to complex128, flat."""
        self.check_indices(ispin, ikpoint, iband)
        kp = self.kpoints[ikpoint]
        dtype = self.header.coeff_dtype
        offset = band_record(ispin, ikpoint, iband, self.nkpoints, self.nbands) * self.header.record_len
        buf = self._read_at(offset, kp.nplw * dtype.itemsize,
                            f"band record (spin {ispin}, k-point {ikpoint}, band {iband})")
        return np.frombuffer(buf, dtype=dtype).astype(np.complex128)

    def read_coeffs(self, ispin: int, ikpoint: int, iband: int) -> CoefficientSet:
        """Decode one band, aligned with `self.basis(ikpoint)`."""
        self.check_indices(ispin, ikpoint, iband)
        basis = self.basis(ikpoint)
        coeffs = self.read_raw(ispin, ikpoint, iband)
        if self._type is WavecarType.NONCOLLINEAR:
            coeffs = coeffs.reshape(2, len(basis))
        return CoefficientSet(ispin=ispin, ikpoint=ikpoint, iband=iband,
                              coeffs=coeffs, variant=self._type)

    def get_wavefunction_realspace(self, ispin: int, ikpoint: int, iband: int,
                                   ngrid=None, normalization: str = "volume",
                                   strict_grid: bool = False) -> Wavefunction:
        """Decode one band and transform it to real space."""
        cs = self.read_coeffs(ispin, ikpoint, iband)
        basis = self.basis(ikpoint)
        ngrid = resolve_grid(ngrid, basis, self.default_fine_grid, strict=strict_grid)
        data = reconstruct(basis, cs.coeffs, ngrid, self.volume, normalization)
        return Wavefunction(data=data, variant=self._type, ispin=ispin, ikpoint=ikpoint,
                            iband=iband, energy=float(self._eigs[ispin, ikpoint, iband]),
                            volume=self.volume, normalization=normalization)

    # ------------------------------------------------------------------
    #  band information
    # ------------------------------------------------------------------
    def band_data(self) -> BandData:
        return BandData(energies=self._eigs.copy(), occupations=self._occs.copy(),
                        kvecs=self.kvecs,
                        weights=np.array([kp.weight for kp in self.kpoints]),
                        efermi=self.efermi)

    def band_table(self) -> pd.DataFrame:
        """Long-format eigenvalue/occupation table with 1-based indices."""
        isp, ik, ib = np.meshgrid(np.arange(self.nspin), np.arange(self.nkpoints),
                                  np.arange(self.nbands), indexing="ij")
        kv = self.kvecs[ik.ravel()]
        return pd.DataFrame({
            "spin": isp.ravel() + 1,
            "kpoint": ik.ravel() + 1,
            "kx": kv[:, 0], "ky": kv[:, 1], "kz": kv[:, 2],
            "band": ib.ravel() + 1,
            "energy": self._eigs.ravel(),
            "occupation": self._occs.ravel(),
        })

    def summary(self, detail: bool = False) -> str:
        h = self.header
        lines = [
            f"WAVECAR        : {self.wavecar}",
            f"record length  : {h.record_len} bytes",
            f"precision      : {h.precision} (RTAG={h.rtag})",
            f"type           : {self._type}",
            f"ISPIN = {h.nspin}   NKPTS = {h.nkpoints}   NBANDS = {h.nbands}",
            f"ENCUT = {h.encut:.3f} eV   E-fermi = {h.efermi:.4f} eV",
            f"volume = {h.volume:.4f} Å^3   FFT grid = {h.ngrid}",
            "lattice (Å):",
        ]
        lines += [f"  {a[0]:12.6f} {a[1]:12.6f} {a[2]:12.6f}" for a in h.acell]
        if detail:
            for kp in self.kpoints:
                kx, ky, kz = kp.kvec
                lines.append(f"k-point {kp.index + 1:4d} : ({kx:8.5f},{ky:8.5f},{kz:8.5f})  "
                             f"nplw = {kp.nplw}")
                for isp in range(h.nspin):
                    for ib in range(h.nbands):
                        lines.append(f"    spin {isp + 1}  band {ib + 1:5d}  "
                                     f"E = {self._eigs[isp, kp.index, ib]:12.6f}  "
                                     f"occ = {self._occs[isp, kp.index, ib]:8.5f}")
        return "\n".join(lines)

    def __repr__(self) -> str:
        return (f"Wavecar({self.wavecar!r}, type={self._type}, nspin={self.nspin}, "
                f"nkpoints={self.nkpoints}, nbands={self.nbands})")


__all__ = [
    "WavecarHeader",
    "KPoint",
    "CoefficientSet",
    "band_info_record",
    "band_record",
    "read_header",
    "read_band_info",
    "Wavecar",
]
