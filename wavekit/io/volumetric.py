#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""
volumetric.py — CHGCAR-style volumetric writer for WAVEKIT
==========================================================
Writes real-space grids (densities, wavefunction parts) as VASP volumetric
files readable by VESTA and friends, through ASE's `VaspChargeDensity`.

The file holds the structure (POSCAR block) followed by the grid values in
Fortran order.  VASP's convention is to store ρ·V, and ASE multiplies the
grid by the cell volume when writing, so `write_vasp_grid` divides by the
volume first: the numbers passed in are the numbers that appear in the file.
"""

from __future__ import annotations

import logging

import numpy as np
from ase.calculators.vasp import VaspChargeDensity

logger = logging.getLogger(__name__)


def write_vasp_grid(filename: str, atoms, grid: np.ndarray) -> str:
    """Write one real 3-D grid with the structure `atoms`; returns the file name."""
    grid = np.asarray(grid)
    if grid.ndim != 3 or np.iscomplexobj(grid):
        raise ValueError(f"volumetric output needs a real 3-D grid, got {grid.dtype} {grid.shape}")

    vol = atoms.get_volume()
    chg = VaspChargeDensity(None)
    chg.atoms = [atoms]
    chg.chg = [np.asarray(grid, dtype=float) / vol]
    chg.write(filename, format="chgcar")
    logger.debug("wrote %s grid to %s", grid.shape, filename)
    return filename


def read_vasp_grid(filename: str):
    """(atoms, grid) of the last image in a volumetric file, grid as stored (ρ·V)."""
    chg = VaspChargeDensity(filename)
    atoms = chg.atoms[-1]
    return atoms, np.asarray(chg.chg[-1]) * atoms.get_volume()


__all__ = ["write_vasp_grid", "read_vasp_grid"]
