#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""
main.py — Command-line driver for WAVEKIT
=========================================
Entry point of the `wavekit` console script.  Parses the input file and
flags, sets up logging, opens the WAVECAR and hands over to the task
driver in `wavekit.tasks`.

Exit status is 0 on success and 1 when the input is malformed or a
computation fails (the error is logged, no traceback).

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

import sys
import time

from . import tasks
from .cli import parse_arguments
from .errors import WavekitError
from .geometry import read_structure
from .logging_utils import banner, print_author_info, setup_logger
from .parallel import TQDM_KW, make_jobs
from .template import _normalize_template_flags, generate_templates_and_exit
from .utils import to_zero_based


def run_task(args, logger) -> None:
    """Dispatch one parsed configuration to its task driver."""
    progress = not args.quiet

    if args.task == "gap":
        bands = tasks.load_band_data(args.wavecar, args.eigenval, args.gamma_half)
        _, text = tasks.run_gap(bands)
        for line in text.splitlines():
            logger.info(line)
        return

    wav = tasks.open_wavecar(args.wavecar, args.gamma_half)
    with wav:
        logger.info(repr(wav))
        ispins = to_zero_based(args.ispins)
        ikpoints = to_zero_based(args.ikpoints)
        ibands = to_zero_based(args.ibands)

        if args.task == "info":
            text = tasks.run_info(wav, detail=args.detail, csv=f"{args.prefix}_bands.csv")
            for line in text.splitlines():
                logger.info(line)
            return

        if args.task == "tdm":
            jbands = to_zero_based(args.jbands) if args.jbands is not None else None
            elements, _, _ = tasks.run_tdm(wav, ispins, ikpoints, ibands, jbands, sigma=args.sigma,
                                           peakout=f"{args.prefix}_tdm_peaks.csv",
                                           txtout=f"{args.prefix}_tdm_smeared.txt")
            logger.info(f"{len(elements)} transition(s) evaluated")
            return

        if args.task == "nac":
            for ik in ikpoints:
                out = "NAC-0K.npz" if len(ikpoints) == 1 else f"NAC-0K_k{ik + 1}.npz"
                tasks.run_nac(wav, ik, to_zero_based(args.brange), nsteps=args.nsteps,
                              potim=args.potim, output=out, progress=progress)
            return

        jobs = make_jobs(ispins, ikpoints, ibands)
        common = dict(ngrid=args.ngrid, strict_grid=args.strict_grid, nprocs=args.nprocs,
                      backend=args.backend, progress=progress)

        if args.task == "wav1d":
            tasks.run_wav1d(wav, jobs, axis=args.axis, scale=args.scale, txtout=args.txtout, **common)
            return

        # wav3d
        atoms = read_structure(args.poscar)
        tasks.run_wav3d(wav, atoms, jobs, parts=args.output_parts, prefix=args.prefix,
                        show_eigs_suffix=args.show_eigs_suffix,
                        normalization=args.normalization, **common)
        if args.sum_density:
            tasks.run_sum_density(wav, atoms, jobs, prefix=args.prefix,
                                  normalization=args.normalization, **common)


def main(argv: list[str] | None = None) -> None:
    # ── normalize argv and handle template-only early exit ───────────
    raw_argv = sys.argv[1:] if argv is None else list(argv)
    argv = _normalize_template_flags(raw_argv)

    try:
        args = parse_arguments(argv)
    except ValueError as err:
        print(f"wavekit: error: {err}", file=sys.stderr)
        sys.exit(1)

    if getattr(args, "template", False):
        generate_templates_and_exit(getattr(args, "input_file", "wavekit.inp"))
        return  # safety, generate_templates_and_exit() sys.exit(0)s

    if args.quiet:
        TQDM_KW["disable"] = True

    start_t = time.perf_counter()
    logger = setup_logger("wavekit")

    stamp = time.strftime("%a %Y-%m-%d %H:%M:%S")
    banner(logger, args.task)
    print_author_info(logger)
    logger.info(f"Run Timestamp : {stamp}")

    try:
        run_task(args, logger)
    except (WavekitError, FileNotFoundError, ValueError) as err:
        logger.error(f"{type(err).__name__}: {err}")
        sys.exit(1)

    logger.info(f"Finished task '{args.task}' in {time.perf_counter() - start_t:.2f} s")


if __name__ == "__main__":
    main()
