#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""
utils.py — Small parsing and naming helpers for WAVEKIT
=======================================================
Conversions shared by the command line, the input file and the task
drivers.

- parse_index_list("1..4 7,9") → [1, 2, 3, 4, 7, 9]   (1-based, inclusive ranges)
- to_zero_based([1, 2])        → [0, 1]
- parse_grid("120 120 240")    → (120, 120, 240)
- eigen_suffix(-1.2345)        → "_-1.234eV"
- output_name(prefix, job, ...) → "wav_1-1-5.vasp" style file names
"""

from __future__ import annotations

import re

_SPLIT = re.compile(r"[\s,]+")


def parse_index_list(spec) -> list[int]:
    """Expand tokens like "3", "1..4" (inclusive) into 1-based indices, order kept."""
    if spec is None:
        return []
    if isinstance(spec, int):
        tokens = [str(spec)]
    elif isinstance(spec, str):
        tokens = [t for t in _SPLIT.split(spec.strip()) if t]
    else:
        tokens = [t for item in spec for t in _SPLIT.split(str(item).strip()) if t]

    out: list[int] = []
    for tok in tokens:
        try:
            if ".." in tok:
                lo, hi = (int(x) for x in tok.split("..", 1))
                if lo > hi:
                    raise ValueError
                out.extend(range(lo, hi + 1))
            else:
                out.append(int(tok))
        except ValueError:
            raise ValueError(f"invalid index or range {tok!r}; use N or A..B with A <= B") from None
    if any(i < 1 for i in out):
        raise ValueError(f"indices start from 1, got {spec!r}")
    return out


def to_zero_based(indices) -> list[int]:
    return [int(i) - 1 for i in indices]


def parse_grid(spec):
    """Three positive integers, or None for an empty spec."""
    if spec is None:
        return None
    if isinstance(spec, str):
        spec = [t for t in _SPLIT.split(spec.strip()) if t]
        if not spec:
            return None
    try:
        grid = tuple(int(n) for n in spec)
    except ValueError:
        raise ValueError(f"FFT grid must be three integers, got {spec!r}") from None
    if len(grid) != 3 or any(n <= 0 for n in grid):
        raise ValueError(f"FFT grid must be three positive integers, got {spec!r}")
    return grid


def eigen_suffix(energy: float) -> str:
    return f"_{energy:06.3f}eV"


def output_name(prefix: str, ispin: int, ikpoint: int, iband: int,
                suffix: str = "", part: str = "") -> str:
    """{prefix}_{s}-{k}-{b}{suffix}{part}.vasp with 1-based labels from 0-based indices."""
    return f"{prefix}_{ispin + 1}-{ikpoint + 1}-{iband + 1}{suffix}{part}.vasp"


__all__ = ["parse_index_list", "to_zero_based", "parse_grid", "eigen_suffix", "output_name"]
