#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""
logging_utils.py — Centralized logging and runtime banners for WAVEKIT
======================================================================
Provides the logging setup, author banner and run announcements shared by
every WAVEKIT task.  Library modules only create child loggers
(`logging.getLogger(__name__)` → "wavekit.*"); handlers are attached once,
by the command-line driver, through `setup_logger`.

Main functions
---------------
- **setup_logger(name='wavekit')**
    Configure and return a `logging.Logger` with a stdout handler and a
    UTF-8 file handler named `run_YYYY-MM-DD_HHMMSS.log`.  Earlier
    `run_*.log` files in the working directory are removed first.

- **print_author_info(logger)**
    Author and citation block (UTF-8 box characters).

- **banner(logger, task)**
    Start banner naming the task being run.

Logging format
---------------
- **Message format:**  `%(asctime)s  %(levelname)8s: %(message)s`
- **Timestamp format:** `%Y-%m-%d %H:%M:%S`

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
import logging, sys, datetime, glob, os

# Message format uses logging fields; asctime will be formatted by DATE_FMT below.
LOG_FMT  = "%(asctime)s  %(levelname)8s: %(message)s"
DATE_FMT = "%Y-%m-%d %H:%M:%S"

_TASK_TITLES = {
    "info": "WAVECAR Header Summary",
    "wav3d": "Real-Space Wavefunction Reconstruction",
    "wav1d": "Planar-Averaged Wavefunction Profiles",
    "gap": "Band Gap Analysis",
    "tdm": "Transition Dipole Moments",
    "nac": "Model Non-Adiabatic Coupling",
}


def setup_logger(name: str = "wavekit", logfile: bool = True,
                 level: int = logging.INFO) -> logging.Logger:
    logger = logging.getLogger(name)
    logger.setLevel(level)
    logger.propagate = False

    ch = logging.StreamHandler(sys.stdout)
    ch.setFormatter(logging.Formatter(LOG_FMT, DATE_FMT))

    # Reset and attach
    logger.handlers.clear()
    logger.addHandler(ch)

    if logfile:
        # Clean up old logs in cwd
        for old in glob.glob("run_*.log"):
            try:
                os.remove(old)
            except OSError:
                logger.warning(f"could not remove old log file {old}")

        stamp = datetime.datetime.now().strftime("%Y-%m-%d_%H%M%S")
        fh = logging.FileHandler(f"run_{stamp}.log", mode="w", encoding="utf-8")
        fh.setFormatter(logging.Formatter(LOG_FMT, DATE_FMT))
        logger.addHandler(fh)
    return logger


def print_author_info(logger: logging.Logger) -> None:
    lines = [
        "═" * 70,
        " Author     : Prof. Chinedu E. Ekuma",
        " Affiliation: Lehigh University, Bethlehem PA 18015",
        " Contact    : cekuma@lehigh.edu",
        " Homepage   : https://physics.lehigh.edu/~cekuma",
        "═" * 70,
    ]
    for line in lines:
        logger.info(line)


def banner(logger: logging.Logger, task: str = "") -> None:
    title = _TASK_TITLES.get(task, "WAVECAR Post-Processing")
    logger.info("═"*70)
    logger.info(f" Starting {title} ")
    logger.info("═"*70)


__all__ = ["LOG_FMT", "DATE_FMT", "setup_logger", "print_author_info", "banner"]
