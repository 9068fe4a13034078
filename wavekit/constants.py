#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""
constants.py — Physical and numerical constants for WAVEKIT
===========================================================
This module defines the physical constants and internal unit conversions
used throughout WAVEKIT.  Values that enter the plane-wave cutoff test are
the ones VASP itself uses (not CODATA), so that regenerated G-vector sets
match the simulator's own basis plane wave for plane wave.

Purpose
--------
•  Provide a single authoritative source of physical constants.
•  Keep the VASP kinetic-energy prefactor ħ²/2mₑ in the exact form the
   simulator uses (RYTOEV · AUTOA²).
•  Export the precision tags written into the WAVECAR header.

Defined constants
-----------------
Energy & length:
    RY_TO_EV, HARTREE2EV, AU_TO_A, BOHR2ANG
Kinetic energy prefactor:
    HBAR2D2ME = ħ²/2mₑ in eV·Å²
Dipoles:
    AUTDEBYE (e·bohr → Debye)
WAVECAR precision tags:
    RTAG_SINGLE, RTAG_DOUBLE
Mathematical:
    TWO_PI

Usage
-----
    from wavekit.constants import HBAR2D2ME, TWO_PI
    ekin = HBAR2D2ME * np.sum((TWO_PI * gk @ bcell) ** 2, axis=1)

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


import numpy as np

# --- VASP internal values (constant.inc) ---
_RY_TO_EV  = 13.605693009
_AU_TO_A   = 0.529177249
_AUTDEBYE  = 2.541746
_TWO_PI    = 2.0 * np.pi

# --- CODATA values used for reporting only ---
_HARTREE2EV = 27.211386245988
_BOHR2ANG   = 0.529177210903

# ħ²/2mₑ in eV·Å² (VASP: HSQDTM = RYTOEV * AUTOA * AUTOA)
_HBAR2D2ME = _RY_TO_EV * _AU_TO_A * _AU_TO_A

# Precision tags in the first WAVECAR record
_RTAG_SINGLE = 45200
_RTAG_DOUBLE = 45210

# --- public aliases ---
RY_TO_EV   = _RY_TO_EV
AU_TO_A    = _AU_TO_A
AUTDEBYE   = _AUTDEBYE
TWO_PI     = _TWO_PI
HARTREE2EV = _HARTREE2EV
BOHR2ANG   = _BOHR2ANG
HBAR2D2ME  = _HBAR2D2ME

RTAG_SINGLE = _RTAG_SINGLE
RTAG_DOUBLE = _RTAG_DOUBLE

__all__ = [
    "RY_TO_EV", "AU_TO_A", "AUTDEBYE", "TWO_PI",
    "HARTREE2EV", "BOHR2ANG",
    "HBAR2D2ME",
    "RTAG_SINGLE", "RTAG_DOUBLE",
]
