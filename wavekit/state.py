#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""
state.py — Per-process runtime state for WAVEKIT
================================================
Holds the resources a worker process needs for the lifetime of a pool:
the path of the WAVECAR being processed and the read-only `Wavecar`
opened on it.  Every process has its own `STATE`; pool workers fill it once
in their initializer (`parallel._init_worker`) and every job reuses it, so a
file is opened once per worker instead of once per band.

Usage
------
In a pool initializer:
    >>> from wavekit.state import STATE, set_reader
    >>> set_reader(Wavecar(path), path)

In a job:
    >>> wav = get_reader()

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

from dataclasses import dataclass
from typing import Any, Optional


@dataclass
class RuntimeState:
    wavecar_path: Optional[str] = None
    gamma_half: Optional[str] = None
    reader: Optional[Any] = None

# Single global instance per process. Each worker gets its own copy.
STATE = RuntimeState()


def set_reader(reader: Any, path: str | None = None, gamma_half: str | None = None) -> None:
    STATE.reader = reader
    STATE.wavecar_path = path
    STATE.gamma_half = gamma_half


def get_reader() -> Any:
    if STATE.reader is None:
        raise RuntimeError("no WAVECAR reader in this process; was the pool initializer run?")
    return STATE.reader


def clear_reader() -> None:
    if STATE.reader is not None:
        STATE.reader.close()
    STATE.reader = None
    STATE.wavecar_path = None
    STATE.gamma_half = None
