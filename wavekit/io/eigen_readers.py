#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""
eigen_readers.py — Band-energy readers for WAVEKIT
==================================================
Parsers that extract eigenvalues, occupations and k-point metadata from
plain-text band files.  The result is the same `BandData` container the
WAVECAR band-info records produce, so gap detection and k-point weighting
do not care where the numbers came from.

Class overview
---------------
- **EigenvalReader (ABC)**
    Abstract base defining `read() -> BandData`.

- **VASPEigenvalReader**
    Parses VASP *EIGENVAL* files, non-polarized (idx, E, occ) and
    spin-polarized in both the one-line (idx, E↑, E↓, occ↑, occ↓) and the
    two-line layout, skipping blank separator lines.  K-point weights are
    normalized to Σw = 1.

- **get_eigenvalue_reader(code, filename)**
    Factory returning the reader for a given code keyword.

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
from abc import ABC, abstractmethod

import numpy as np

from ..errors import FormatError
from ..gap import BandData

logger = logging.getLogger(__name__)


class EigenvalReader(ABC):
    """Abstract base class for all band-structure readers."""

    def __init__(self, filename: str):
        self.filename = filename

    @abstractmethod
    def read(self) -> BandData:
        raise NotImplementedError


class VASPEigenvalReader(EigenvalReader):
    """Parse a VASP EIGENVAL file."""

    def _next_nonblank(self, lines, p: int, what: str) -> int:
        while p < len(lines) and not lines[p].strip():
            p += 1
        if p >= len(lines):
            raise FormatError(f"{self.filename}: unexpected end of file while reading {what}")
        return p

    def read(self) -> BandData:
        with open(self.filename) as f:
            lines = f.readlines()
        if len(lines) < 7:
            raise FormatError(f"{self.filename}: EIGENVAL header is incomplete")

        try:
            nspin = int(lines[0].split()[-1])
        except (IndexError, ValueError):
            raise FormatError(f"{self.filename}: cannot read the spin flag on line 1") from None
        if nspin not in (1, 2):
            raise FormatError(f"{self.filename}: invalid spin flag {nspin} on line 1")

        try:
            _, n_k, n_b = map(int, lines[5].split()[:3])
        except ValueError:
            raise FormatError(
                f"{self.filename}: malformed 6th line, cannot read electron/k-point/band counts"
            ) from None

        kpts, wts = [], []
        en = np.zeros((nspin, n_k, n_b))
        occ = np.zeros((nspin, n_k, n_b))
        p = 6

        for ik in range(n_k):
            p = self._next_nonblank(lines, p, f"k-point {ik + 1}")
            try:
                k_line = [float(x) for x in lines[p].split()]
            except ValueError:
                raise FormatError(f"{self.filename}: k-point line {p + 1} malformed") from None
            if len(k_line) < 4:
                raise FormatError(f"{self.filename}: k-point line {p + 1} malformed")
            kpts.append(k_line[:3])
            wts.append(k_line[3])
            p += 1

            for ib in range(n_b):
                p = self._next_nonblank(lines, p, f"band {ib + 1} of k-point {ik + 1}")
                toks = lines[p].split()
                try:
                    if nspin == 1:
                        en[0, ik, ib] = float(toks[1])
                        occ[0, ik, ib] = float(toks[2]) if len(toks) > 2 else 0.0
                        p += 1
                    elif len(toks) == 5:
                        _, e_up, e_dn, occ_up, occ_dn = toks
                        en[:, ik, ib] = float(e_up), float(e_dn)
                        occ[:, ik, ib] = float(occ_up), float(occ_dn)
                        p += 1
                    else:
                        # two-line format: first up, then down
                        _, e_up, occ_up = toks[:3]
                        p = self._next_nonblank(lines, p + 1, f"spin-down band {ib + 1}")
                        _, e_dn, occ_dn = lines[p].split()[:3]
                        en[:, ik, ib] = float(e_up), float(e_dn)
                        occ[:, ik, ib] = float(occ_up), float(occ_dn)
                        p += 1
                except (IndexError, ValueError):
                    raise FormatError(f"{self.filename}: band line {p + 1} malformed") from None

        wts = np.array(wts, dtype=float)
        if wts.sum() > 0 and not np.isclose(wts.sum(), 1.0, rtol=1e-6):
            wts /= wts.sum()

        logger.info(f"  ↳ parsed {n_k} k-points × {n_b} bands  (spin={nspin})")
        return BandData(energies=en, occupations=occ, kvecs=np.array(kpts, dtype=float),
                        weights=wts)


def get_eigenvalue_reader(code: str, filename: str) -> EigenvalReader:
    code = code.strip().lower()
    if code == "vasp":
        return VASPEigenvalReader(filename)
    raise ValueError(f"Unsupported code '{code}' for band energies; only 'vasp' is available.")


__all__ = ["EigenvalReader", "VASPEigenvalReader", "get_eigenvalue_reader"]
