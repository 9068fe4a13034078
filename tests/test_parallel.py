import pickle
from functools import partial

import numpy as np
import pytest

from wavekit.basis import WavecarType, default_ngrid, generate_basis
from wavekit.errors import (
    BasisMismatchError,
    FormatError,
    GridTooSmallError,
    InvalidPairError,
    WavecarIndexError,
    ZeroNormError,
)
from wavekit.io.wavecar import Wavecar
from wavekit.parallel import Job, ParallelDispatcher, make_jobs
from wavekit.state import STATE, clear_reader, get_reader, set_reader
from wavekit.tasks import _density_job

from conftest import CUBIC, ENCUT


def _coeffs(wavecar, job):
    return wavecar.read_coeffs(job.ispin, job.ikpoint, job.iband).coeffs


def _density(wavecar, job, ngrid=(6, 6, 6), strict=True):
    wf = wavecar.get_wavefunction_realspace(job.ispin, job.ikpoint, job.iband,
                                            ngrid=ngrid, strict_grid=strict)
    return wf.density()


def _fails_on_band(wavecar, job, band, exc):
    if job.iband == band:
        raise exc
    return job.iband


def test_make_jobs_order():
    jobs = make_jobs([0, 1], [0], [2, 3])
    assert jobs == [Job(0, 0, 2), Job(0, 0, 3), Job(1, 0, 2), Job(1, 0, 3)]
    assert jobs[1].label == "1-1-4"


@pytest.mark.parametrize("backend", ["thread", "serial"])
def test_map_matches_serial_decode(standard_wavecar, backend):
    jobs = make_jobs([0], [0, 1], [0, 1, 2, 3]) * 2       # duplicates on purpose
    with Wavecar(standard_wavecar.path) as wav:
        expected = [_coeffs(wav, j) for j in jobs]
        disp = ParallelDispatcher(wav, nprocs=4, backend=backend, progress=False)
        results = disp.map(_coeffs, jobs)
    assert [r.job for r in results] == jobs
    for res, ref in zip(results, expected):
        assert res.ok
        np.testing.assert_array_equal(res.value, ref)


def test_reduce_sums_densities(standard_wavecar):
    jobs = make_jobs([0], [0, 1], range(4))
    with Wavecar(standard_wavecar.path) as wav:
        serial = sum(_density(wav, j) for j in jobs)
        disp = ParallelDispatcher(wav, nprocs=3, backend="thread", progress=False)
        total, failed = disp.reduce(_density, jobs, np.add)
    assert not failed
    np.testing.assert_allclose(total, serial)
    assert total.sum() * 64.0 / total.size == pytest.approx(len(jobs))


def test_non_fatal_error_fails_only_its_job(standard_wavecar):
    jobs = make_jobs([0], [0], range(4))
    func = partial(_fails_on_band, band=2, exc=InvalidPairError(2, 2))
    with Wavecar(standard_wavecar.path) as wav:
        disp = ParallelDispatcher(wav, nprocs=2, backend="thread", progress=False)
        results = disp.map(func, jobs)
        acc, failed = disp.reduce(func, jobs, lambda a, b: a + b, 0)
    assert [r.ok for r in results] == [True, True, False, True]
    assert isinstance(results[2].error, InvalidPairError)
    assert acc == 0 + 1 + 3
    assert [f.job.iband for f in failed] == [2]


def test_zero_weight_band_fails_only_its_job(make_wavecar):
    # an all-zero record cannot be volume-normalized
    nplw = generate_basis((0, 0, 0), ENCUT, np.linalg.inv(CUBIC).T,
                          default_ngrid(CUBIC, ENCUT), WavecarType.STANDARD).ncoeffs
    syn = make_wavecar(nbands=4, coeffs={(0, 0, 2): np.zeros(nplw, dtype=complex)})
    jobs = make_jobs([0], [0], range(4))
    with Wavecar(syn.path) as wav:
        disp = ParallelDispatcher(wav, backend="serial", progress=False)
        results = disp.map(_density, jobs)
        total, failed = disp.reduce(_density, jobs, np.add)
    assert [r.ok for r in results] == [True, True, False, True]
    assert isinstance(results[2].error, ZeroNormError)
    assert [f.job.iband for f in failed] == [2]
    assert total.sum() * 64.0 / total.size == pytest.approx(3.0)


def test_grid_too_small_is_recoverable(standard_wavecar):
    jobs = make_jobs([0], [0, 1], [0])
    with Wavecar(standard_wavecar.path) as wav:
        disp = ParallelDispatcher(wav, backend="serial", progress=False)
        results = disp.map(partial(_density, ngrid=(2, 2, 2), strict=True), jobs)
    assert all(isinstance(r.error, GridTooSmallError) for r in results)


@pytest.mark.parametrize("exc", [FormatError("bad record", 128), BasisMismatchError(0, 10, 12)])
def test_fatal_error_aborts_batch(standard_wavecar, exc):
    jobs = make_jobs([0], [0], range(4))
    func = partial(_fails_on_band, band=1, exc=exc)
    with Wavecar(standard_wavecar.path) as wav:
        disp = ParallelDispatcher(wav, nprocs=2, backend="thread", progress=False)
        with pytest.raises(type(exc)):
            disp.map(func, jobs)


def test_bad_index_rejected_before_dispatch(standard_wavecar):
    calls = []

    def record(wavecar, job):
        calls.append(job)

    with Wavecar(standard_wavecar.path) as wav:
        disp = ParallelDispatcher(wav, backend="thread", progress=False)
        with pytest.raises(WavecarIndexError):
            disp.map(record, [Job(0, 0, 0), Job(0, 0, 9)])
    assert calls == []


def test_unknown_backend(standard_wavecar):
    with pytest.raises(ValueError, match="backend"):
        ParallelDispatcher(standard_wavecar.path, backend="mpi")


def test_errors_survive_pickling():
    for err in (FormatError("x", 8), WavecarIndexError("band", 5, 4),
                BasisMismatchError(1, 2, 3, "Standard"), GridTooSmallError((2, 2, 2), (3, 3, 3)),
                InvalidPairError(3, 1), ZeroNormError(0.0)):
        clone = pickle.loads(pickle.dumps(err))
        assert type(clone) is type(err)
        assert str(clone) == str(err)


def test_process_backend(standard_wavecar):
    jobs = make_jobs([0], [0, 1], [0, 3])
    with Wavecar(standard_wavecar.path) as wav:
        expected = sum(_density(wav, j, ngrid=(6, 6, 6)) for j in jobs)
    with ParallelDispatcher(standard_wavecar.path, nprocs=2, backend="process", progress=False) as disp:
        total, failed = disp.reduce(partial(_density_job, ngrid=(6, 6, 6)), jobs, np.add)
    assert not failed
    np.testing.assert_allclose(total, expected, atol=1e-12)


def test_runtime_state(standard_wavecar):
    clear_reader()
    with pytest.raises(RuntimeError):
        get_reader()
    wav = Wavecar(standard_wavecar.path)
    set_reader(wav, str(standard_wavecar.path))
    assert get_reader() is wav
    assert STATE.wavecar_path == str(standard_wavecar.path)
    clear_reader()
    assert STATE.reader is None
