#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""
cli.py — Command-line interface and configuration parser for WAVEKIT
=====================================================================
Defines WAVEKIT's argument parser and input-file reader.  Values come from
three layers, later layers winning:

1. `default_params` below,
2. the `[WAVEKIT]` section of `wavekit.inp` (or `--input_file`),
3. command-line flags.

Band selections accept 1-based indices and inclusive ranges
("1 3 5..8"); they are expanded here and converted to 0-based indices by
the driver.

Key functions
--------------
- parse_arguments(argv)              : Central parser returning a validated args object.
- _extract_input_file_from_argv()    : Detects input file names on the CLI.

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

import os
import argparse
import configparser
import logging

from .fft import NORMALIZATIONS
from .parallel import BACKENDS
from .utils import parse_grid, parse_index_list

logger = logging.getLogger(__name__)

TASKS = ("info", "wav3d", "wav1d", "gap", "tdm", "nac")
PARTS = ("ns", "normsquared", "re", "real", "im", "imag", "reim", "uns", "dns")


def _extract_input_file_from_argv(argv, default_name="wavekit.inp"):
    """
    Return the input file path specified on the command line if present,
    supporting both '--input_file foo' and '--input_file=foo'.
    """
    if argv is None:
        argv = []

    for i, tok in enumerate(argv):
        if tok.startswith("--input_file="):
            return tok.split("=", 1)[1]
        if tok == "--input_file" and i + 1 < len(argv):
            return argv[i + 1]
    return default_name


def _gamma_half(s: str | None):
    if s is None:
        return None
    t = s.strip().lower()
    if t in ("", "none", "no", "false"):
        return None
    if t not in ("x", "z"):
        raise ValueError(f"gamma_half must be 'x' or 'z', got {s!r}")
    return t


def parse_arguments(argv: list[str] | None = None):
    # -------------------------
    # defaults
    # -------------------------
    default_params = {
        'task': 'wav3d',
        'wavecar': 'WAVECAR',
        'poscar': 'POSCAR',
        'eigenval': None,
        'gamma_half': None,
        'ispins': '1',
        'ikpoints': '1',
        'ibands': '1',
        'jbands': None,
        'ngrid': None,
        'strict_grid': False,
        'normalization': 'volume',
        'output_parts': ['ns'],
        'prefix': 'wav',
        'show_eigs_suffix': False,
        'sum_density': False,
        'axis': 'z',
        'scale': 10.0,
        'txtout': 'wav1d.txt',
        'sigma': 0.05,
        'brange': None,
        'nsteps': 9,
        'potim': 1.0,
        'detail': False,
        'nprocs': None,
        'backend': 'process',
        'input_file': 'wavekit.inp',
    }

    # ----------------------------------------------------------------
    # Read wavekit.inp with inline comments and blank values
    # ----------------------------------------------------------------
    input_file = _extract_input_file_from_argv(argv, default_params['input_file'])
    if os.path.exists(input_file):
        cfg = configparser.ConfigParser(
            inline_comment_prefixes=('#', ';'),
            allow_no_value=True,
        )
        cfg.read(input_file, encoding="utf-8")

        if 'WAVEKIT' not in cfg:
            raise ValueError(f"The input file {input_file} must contain a [WAVEKIT] section.")
        section = cfg['WAVEKIT']

        def _get_clean(key, fallback=None):
            if key not in section:
                return fallback
            val = section.get(key)
            if val is None:
                return fallback
            val = val.strip()
            return val if val != "" else fallback

        def _get_int(key):
            val = _get_clean(key)
            if val is None:
                return None
            try:
                return int(val)
            except ValueError:
                raise ValueError(f"{input_file}: '{key}' must be an integer, got {val!r}") from None

        def _get_float(key):
            val = _get_clean(key)
            if val is None:
                return None
            try:
                return float(val)
            except ValueError:
                raise ValueError(f"{input_file}: '{key}' must be a number, got {val!r}") from None

        def _get_bool(key):
            if _get_clean(key) is None:
                return None
            try:
                return section.getboolean(key)
            except ValueError:
                raise ValueError(f"{input_file}: '{key}' must be true/false") from None

        # strings / selections
        for key in ('task', 'wavecar', 'poscar', 'eigenval', 'gamma_half', 'ispins',
                    'ikpoints', 'ibands', 'jbands', 'ngrid', 'normalization', 'prefix', 'axis',
                    'txtout', 'backend'):
            val = _get_clean(key)
            if val is not None:
                default_params[key] = val

        parts = _get_clean('output_parts')
        if parts is not None:
            default_params['output_parts'] = parts.replace(',', ' ').split()

        br = _get_clean('brange')
        if br is not None:
            default_params['brange'] = br

        # ints
        for key in ('nsteps', 'nprocs'):
            val = _get_int(key)
            if val is not None:
                default_params[key] = val

        # floats
        for key in ('scale', 'sigma', 'potim'):
            val = _get_float(key)
            if val is not None:
                default_params[key] = val

        # booleans
        for key in ('strict_grid', 'show_eigs_suffix', 'sum_density', 'detail'):
            val = _get_bool(key)
            if val is not None:
                default_params[key] = val

    parser = argparse.ArgumentParser(
        description="Decode VASP WAVECAR files: real-space wavefunctions, densities, "
                    "1-D profiles, band gaps, transition dipoles and model couplings."
    )
    parser.add_argument('--task', type=str.lower, choices=TASKS, default=default_params['task'],
                        help='What to compute')
    parser.add_argument('--wavecar', type=str, default=default_params['wavecar'], help='Path to WAVECAR')
    parser.add_argument('--poscar', type=str, default=default_params['poscar'],
                        help='Structure file for volumetric output (POSCAR, CONTCAR, *.vasp, …)')
    parser.add_argument('--eigenval', type=str, default=default_params['eigenval'],
                        help='Optional EIGENVAL for the gap task (default: WAVECAR band records)')
    parser.add_argument('--gamma_half', type=_gamma_half, default=default_params['gamma_half'],
                        help="Gamma-only WAVECAR half-grid axis: 'x' (vasp_gam) or 'z'")
    parser.add_argument('-s', '--ispins', type=str, default=default_params['ispins'],
                        help='Spin channels, 1-based (e.g. "1 2")')
    parser.add_argument('-k', '--ikpoints', type=str, default=default_params['ikpoints'],
                        help='K-points, 1-based, ranges as A..B')
    parser.add_argument('-b', '--ibands', type=str, default=default_params['ibands'],
                        help='Bands, 1-based, ranges as A..B (e.g. "10..12 15")')
    parser.add_argument('--jbands', type=str, default=default_params['jbands'],
                        help='tdm: final bands; default every pair i < j inside --ibands')
    parser.add_argument('--ngrid', type=str, nargs='+', default=default_params['ngrid'],
                        help='Real-space FFT grid (3 integers); default 2 x VASP grid')
    parser.add_argument('--strict_grid', action='store_true', default=default_params['strict_grid'],
                        help='Fail instead of enlarging a grid that is too small for the basis')
    parser.add_argument('--normalization', choices=NORMALIZATIONS, default=default_params['normalization'],
                        help='Amplitude normalization of real-space wavefunctions')
    parser.add_argument('--output_parts', nargs='+', type=str.lower, choices=PARTS,
                        default=default_params['output_parts'],
                        help='wav3d output: ns re im reim uns dns')
    parser.add_argument('--prefix', type=str, default=default_params['prefix'], help='Output prefix')
    parser.add_argument('--show_eigs_suffix', action='store_true', default=default_params['show_eigs_suffix'],
                        help='Append the band energy relative to E_F to wav3d file names')
    parser.add_argument('--sum_density', action='store_true', default=default_params['sum_density'],
                        help='Also write the summed |psi|^2 of all selected bands')
    parser.add_argument('--axis', type=str.lower, choices=['x', 'y', 'z'], default=default_params['axis'],
                        help='Axis of wav1d profiles')
    parser.add_argument('--scale', type=float, default=default_params['scale'], help='Scale of wav1d profiles')
    parser.add_argument('--txtout', type=str, default=default_params['txtout'], help='wav1d output file')
    parser.add_argument('--sigma', type=float, default=default_params['sigma'],
                        help='Gaussian smearing (eV) of the TDM spectrum')
    parser.add_argument('--brange', type=str, nargs='+', default=default_params['brange'],
                        help='nac: first and last band (1-based) of the band window')
    parser.add_argument('--nsteps', type=int, default=default_params['nsteps'], help='nac: number of static steps')
    parser.add_argument('--potim', type=float, default=default_params['potim'], help='nac: time step (fs)')
    parser.add_argument('--detail', action='store_true', default=default_params['detail'],
                        help='info: list every eigenvalue and occupation')
    parser.add_argument('--backend', choices=BACKENDS, default=default_params['backend'],
                        help='Parallel backend for per-band jobs')
    parser.add_argument('--input_file', type=str, default=default_params['input_file'], help='Input file')
    parser.add_argument('-q', '--quiet', action='store_true', help="Hide tqdm progress bars (keep normal logging)")
    parser.add_argument('-j', '--nprocs', metavar='N', type=int, default=default_params['nprocs'],
                        help='Number of parallel workers. Default: use all available CPUs')
    parser.add_argument('--template', '-T', action='store_true',
                        help='Generate a template wavekit.inp and exit.')

    args = parser.parse_args(argv)

    # ----------------------------------------
    # Post-parse normalization
    # ----------------------------------------
    try:
        args.ispins = parse_index_list(args.ispins)
        args.ikpoints = parse_index_list(args.ikpoints)
        args.ibands = parse_index_list(args.ibands)
        if args.jbands is not None:
            args.jbands = parse_index_list(args.jbands)
        args.ngrid = parse_grid(args.ngrid)
        if args.brange is not None:
            args.brange = parse_index_list(args.brange)
    except ValueError as err:
        parser.error(str(err))

    if args.normalization not in NORMALIZATIONS:
        parser.error(f"normalization must be one of {NORMALIZATIONS}")
    if args.backend not in BACKENDS:
        parser.error(f"backend must be one of {BACKENDS}")
    if args.task not in TASKS:
        parser.error(f"task must be one of {TASKS}")
    args.output_parts = [p.lower() for p in args.output_parts]
    bad = [p for p in args.output_parts if p not in PARTS]
    if bad:
        parser.error(f"unknown output_parts {bad}; choose from {PARTS}")
    if args.nprocs is not None and args.nprocs <= 0:
        args.nprocs = None
    if args.sigma <= 0:
        parser.error("sigma must be positive")
    if args.nsteps <= 0:
        parser.error("nsteps must be positive")
    if args.task == "nac" and (args.brange is None or len(args.brange) != 2):
        parser.error("the nac task needs --brange FIRST LAST")

    return args


__all__ = ["TASKS", "PARTS", "parse_arguments", "_extract_input_file_from_argv"]
