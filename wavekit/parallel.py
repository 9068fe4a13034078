#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""
parallel.py — Band-parallel job dispatch for WAVEKIT
====================================================
Fans independent (spin, k-point, band) jobs over a worker pool and collects
their results, either one by one (`map`) or folded into a single
accumulator in the parent process (`reduce`).

Backends
---------
- "process" : `multiprocessing` pool (spawn context).  The initializer opens
              one read-only `Wavecar` per worker and parks it in `STATE`.
- "thread"  : `multiprocessing.pool.ThreadPool` sharing the parent's reader;
              its positioned reads are serialized by the reader's lock.
- "serial"  : in-process loop, same error semantics (debugging, tiny runs).

Job functions have the signature `func(wavecar, job) -> value`; for the
process backend they must be importable module-level callables (or
`functools.partial` of one).  Jobs never share real-space buffers: each
returns its own array, and the only shared mutable state, the reduction
accumulator, lives in the parent and is updated serially as results arrive.

Errors
-------
FormatError, IndexError (WavecarIndexError) and BasisMismatchError abort the
whole batch: the pool is terminated and the error re-raised.  Any other
WavekitError (GridTooSmallError, InvalidPairError, ZeroNormError) fails only
its job and is reported in `JobResult.error`.

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

import atexit
import itertools
import logging
import multiprocessing as mp
import os
import sys
from dataclasses import dataclass
from functools import partial
from multiprocessing.pool import ThreadPool
from typing import Any, Callable

from tqdm import tqdm

from .errors import BasisMismatchError, FormatError, WavekitError
from .io.wavecar import Wavecar
from .state import get_reader, set_reader

logger = logging.getLogger(__name__)

# Fallback: don't leave progress bars on screen; disable if not a TTY
TQDM_KW = {
    "leave": False,
    "disable": (not sys.stdout.isatty()),
}

BACKENDS = ("process", "thread", "serial")
FATAL_ERRORS = (FormatError, IndexError, BasisMismatchError)


@dataclass(frozen=True)
class Job:
    ispin: int
    ikpoint: int
    iband: int

    @property
    def label(self) -> str:
        return f"{self.ispin + 1}-{self.ikpoint + 1}-{self.iband + 1}"


@dataclass
class JobResult:
    job: Job
    value: Any = None
    error: WavekitError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


def make_jobs(ispins, ikpoints, ibands) -> list[Job]:
    """Cartesian product of the selections, spin outermost."""
    return [Job(s, k, b) for s, k, b in itertools.product(ispins, ikpoints, ibands)]


# ---------------------------------------------------------------------
# Pool initializer – executed ONCE per spawned process
# ---------------------------------------------------------------------
def _init_worker(wavecar_path: str, gamma_half: str | None) -> None:
    reader = Wavecar(wavecar_path, gamma_half=gamma_half)
    set_reader(reader, wavecar_path, gamma_half)
    atexit.register(reader.close)


def _execute(reader, func, index: int, job: Job):
    try:
        return index, func(reader, job), None
    except WavekitError as err:
        return index, None, err


def _run_in_worker(payload):
    index, func, job = payload
    return _execute(get_reader(), func, index, job)


def _run_shared(reader, payload):
    index, func, job = payload
    return _execute(reader, func, index, job)


class ParallelDispatcher:
    """
    Run per-band jobs against one WAVECAR.

    wavecar    : path or an open `Wavecar` (used by the thread/serial
                 backends and for up-front validation)
    gamma_half : forwarded to every worker's reader
    nprocs     : pool size, default os.cpu_count(), never more than the jobs
    """

    def __init__(self, wavecar, gamma_half: str | None = None, nprocs: int | None = None,
                 backend: str = "process", progress: bool = True, desc: str = "bands"):
        if backend not in BACKENDS:
            raise ValueError(f"backend must be one of {BACKENDS}, got {backend!r}")
        if isinstance(wavecar, Wavecar):
            self.reader = wavecar
            self._owns_reader = False
            gamma_half = gamma_half or wavecar.wavecar_type.gamma_axis
        else:
            self.reader = Wavecar(wavecar, gamma_half=gamma_half)
            self._owns_reader = True
        self.path = self.reader.wavecar
        self.gamma_half = gamma_half
        self.nprocs = nprocs
        self.backend = backend
        self.progress = progress
        self.desc = desc

    def close(self):
        if self._owns_reader:
            self.reader.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()

    # ------------------------------------------------------------------
    def _check_jobs(self, jobs) -> None:
        """Fail fast: indices and bases are shared by every job."""
        for job in jobs:
            self.reader.check_indices(job.ispin, job.ikpoint, job.iband)
        self.reader.verify_bases(sorted({job.ikpoint for job in jobs}))

    def _pool_size(self, njobs: int) -> int:
        return max(1, min(self.nprocs or os.cpu_count() or 1, njobs))

    def _completions(self, func: Callable, jobs: list[Job]):
        """Yield (index, value, error) in completion order; fatal errors raise."""
        payloads = [(i, func, job) for i, job in enumerate(jobs)]
        nproc = self._pool_size(len(jobs))
        kw = dict(TQDM_KW, total=len(jobs), desc=self.desc)
        if not self.progress:
            kw["disable"] = True

        if self.backend == "serial" or (self.backend == "thread" and nproc == 1):
            for item in tqdm(map(partial(_run_shared, self.reader), payloads), **kw):
                yield self._raise_fatal(jobs, item)
            return

        if self.backend == "thread":
            pool = ThreadPool(nproc)
            run = partial(_run_shared, self.reader)
        else:
            ctx = mp.get_context("spawn")  # robust across platforms
            pool = ctx.Pool(processes=nproc, initializer=_init_worker,
                            initargs=(self.path, self.gamma_half))
            run = _run_in_worker

        with pool:
            for item in tqdm(pool.imap_unordered(run, payloads), **kw):
                yield self._raise_fatal(jobs, item)

    @staticmethod
    def _raise_fatal(jobs, item):
        index, _, err = item
        if isinstance(err, FATAL_ERRORS):
            logger.error("job %s aborted the batch: %s", jobs[index].label, err)
            raise err
        return item

    def _results(self, func, jobs):
        for index, value, err in self._completions(func, jobs):
            job = jobs[index]
            if err is not None:
                logger.warning("job %s failed: %s", job.label, err)
            yield index, JobResult(job=job, value=value, error=err)

    def map(self, func: Callable, jobs) -> list[JobResult]:
        """One JobResult per job, in the order of `jobs`."""
        jobs = list(jobs)
        if not jobs:
            return []
        self._check_jobs(jobs)
        results = [None] * len(jobs)
        for index, res in self._results(func, jobs):
            results[index] = res
        return results

    def reduce(self, func: Callable, jobs, reducer: Callable, initial=None):
        """
        Fold successful job values with `reducer(acc, value)` as they arrive.
        Returns (accumulator, failed JobResults).
        """
        jobs = list(jobs)
        acc, failed = initial, []
        if not jobs:
            return acc, failed
        self._check_jobs(jobs)
        for _, res in self._results(func, jobs):
            if res.ok:
                acc = res.value if acc is None else reducer(acc, res.value)
            else:
                failed.append(res)
        return acc, failed


__all__ = [
    "TQDM_KW",
    "BACKENDS",
    "FATAL_ERRORS",
    "Job",
    "JobResult",
    "make_jobs",
    "ParallelDispatcher",
]
