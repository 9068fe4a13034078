#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""
template.py — Input template generator for WAVEKIT
==================================================
Writes a commented `wavekit.inp` into the working directory (never over an
existing file) and normalizes the loose spellings of the template flag.

Usage
------
```bash
wavekit --template                       # writes wavekit.inp if missing
wavekit --template --input_file my.inp   # custom name
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
import sys, os
from pathlib import Path
from textwrap import dedent

BANNER = r"""
══════════════════════════════════════════════════════════════════════
     Plane-Wave Wavefunction Toolkit (wavekit)
     Authors: C. Ekuma et al.
══════════════════════════════════════════════════════════════════════

A template input has been generated in the current directory.
Modify it to suit your calculation.

You will need the binary WAVECAR of a VASP run and, for volumetric
output, the matching POSCAR/CONTCAR.  EIGENVAL is optional (gap task).

Run examples:
  wavekit --input_file wavekit.inp
  wavekit --task wav3d --ikpoints 1 --ibands 10..12 --output_parts ns re
  wavekit --template         # regenerate the template (won't overwrite)
"""

WAVEKIT_INP_TEMPLATE = dedent("""\
    # wavekit.inp — edit values in the [WAVEKIT] section
    [WAVEKIT]
    task = wav3d                # info | wav3d | wav1d | gap | tdm | nac

    wavecar = WAVECAR
    poscar  = POSCAR            # structure for volumetric output (wav3d)
    eigenval =                  # optional EIGENVAL for the gap task
    gamma_half =                # x | z for gamma-only WAVECARs; blank = standard/NC

    # Band selection (1-based; ranges as A..B)
    ispins   = 1
    ikpoints = 1
    ibands   = 1

    ngrid =                     # e.g. 120 120 240; blank = 2 x VASP grid
    strict_grid = false         # true: error on a grid smaller than the basis
    normalization = volume      # volume | none

    # wav3d
    output_parts = ns           # ns re im reim uns dns
    prefix = wav
    show_eigs_suffix = false    # append _{E-Ef}eV to file names
    sum_density = false         # also write the summed |psi|^2 of all bands

    # wav1d
    axis  = z
    scale = 10.0
    txtout = wav1d.txt

    # tdm
    jbands =                    # final bands; blank = all pairs i < j within ibands
    sigma = 0.05                # Gaussian smearing (eV)

    # nac
    brange = 1 2                # first and last band of the window
    nsteps = 9
    potim  = 1.0                # fs

    # info
    detail = false

    # Parallelism
    nprocs =
    backend = process           # process | thread | serial
    """)


def _write_file_if_missing(path: Path, content: str) -> bool:
    """
    Write text file if it doesn't already exist. Returns True if written.
    """
    if path.exists():
        return False
    path.write_text(content, encoding="utf-8")
    return True


def write_wavekit_template(filename: str | os.PathLike = "wavekit.inp") -> bool:
    return _write_file_if_missing(Path(filename), WAVEKIT_INP_TEMPLATE)


def generate_templates_and_exit(input_file: str = "wavekit.inp") -> None:
    """Write the template input if missing, report, and exit(0)."""
    created = write_wavekit_template(input_file)
    print(BANNER)
    if not created:
        print(f"  - {input_file} already exists; nothing was overwritten.")
        print("Delete it and re-run `wavekit --template` to regenerate,")
        print("or simply edit the existing file to suit your calculation.\n")
    else:
        print(f"  - {input_file:13s} : created")
        print(f"\nEdit '{input_file}' and re-run:  wavekit --input_file {input_file}\n")
    sys.exit(0)


def _normalize_template_flags(argv: list[str]) -> list[str]:
    """
    Accept various short/loose forms and normalize them to '--template'.
    Recognized variants (with/without spaces):
      -0, - 0, -input, - input, --input, --template
    """
    out: list[str] = []
    skip_next = False
    for i, tok in enumerate(argv):
        if skip_next:
            skip_next = False
            continue

        t = tok.strip().lower()
        if t in ("-0", "-input", "--input", "--template"):
            out.append("--template")
            continue

        # handle spaced forms: "- 0" or "- input"
        if t == "-" and i + 1 < len(argv):
            nxt = argv[i + 1].strip().lower()
            if nxt in ("0", "input"):
                out.append("--template")
                skip_next = True
                continue

        out.append(tok)
    return out


__all__ = [
    "BANNER",
    "WAVEKIT_INP_TEMPLATE",
    "write_wavekit_template",
    "generate_templates_and_exit",
    "_normalize_template_flags",
]
