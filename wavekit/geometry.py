#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""
geometry.py — Structure input and lattice helpers for WAVEKIT
=============================================================
Loads the crystal structure that accompanies a WAVECAR (POSCAR/CONTCAR or
any ASE-readable format) and checks it against the lattice stored in the
wavefunction file.

Key functions
--------------
- **_guess_format(fname)**
    Map file names or extensions to explicit ASE reader formats.
- **read_structure(fname)**
    Load the structure with `ase.io.read`.
- **check_lattice(atoms, acell, tol)**
    Warn when the structure cell differs from the WAVECAR cell.
- **axis_index(axis)** / **axis_coordinates(acell, n, axis)**
    Axis names → array axes, and the Cartesian distance of every grid plane
    along one lattice vector (used for 1-D profiles).

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
from pathlib import Path

import numpy as np
from ase import io as aseio

logger = logging.getLogger(__name__)

_AXES = {"x": 0, "y": 1, "z": 2, "0": 0, "1": 1, "2": 2}


def _guess_format(fname: str) -> str | None:
    """
    Map a structure file name to an explicit ASE format string when
    autodetection may fail; anything not listed is left to ASE's sniffing.
    """
    base = Path(fname).name
    ext = base.lower().split('.')[-1]
    if base in ('POSCAR', 'CONTCAR') or ext == 'vasp':
        return 'vasp'
    if ext == 'cif':
        return 'cif'
    if ext == 'xsf':
        return 'xsf'
    return None


def read_structure(fname: str = "POSCAR"):
    if not Path(fname).is_file():
        raise FileNotFoundError(f"Structure file not found: {fname}")
    atoms = aseio.read(fname, format=_guess_format(fname))
    logger.debug("read %d atoms from %s", len(atoms), fname)
    return atoms


def check_lattice(atoms, acell, tol: float = 1e-4) -> bool:
    """True when the structure cell matches `acell` within `tol` Å."""
    cell = np.asarray(atoms.get_cell(), dtype=float)
    diff = float(np.max(np.abs(cell - np.asarray(acell, dtype=float))))
    if diff > tol:
        logger.warning("Lattice of the structure file differs from the WAVECAR lattice "
                       "by up to %.2e Å; the structure file is used for output only.", diff)
        return False
    return True


def axis_index(axis) -> int:
    try:
        return _AXES[str(axis).strip().lower()]
    except KeyError:
        raise ValueError(f"axis must be one of x, y, z (or 0, 1, 2), got {axis!r}") from None


def axis_coordinates(acell, n: int, axis) -> np.ndarray:
    """Distances (Å) of the `n` grid planes from the origin along lattice vector `axis`."""
    length = float(np.linalg.norm(np.asarray(acell, dtype=float)[axis_index(axis)]))
    return np.linspace(0.0, length, int(n))


__all__ = ["read_structure", "check_lattice", "axis_index", "axis_coordinates"]
