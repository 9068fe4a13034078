"""Shared fixtures: small synthetic WAVECAR files written byte by byte."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

import numpy as np
import pytest

from wavekit.basis import WavecarType, default_ngrid, generate_basis
from wavekit.constants import RTAG_DOUBLE, RTAG_SINGLE

CUBIC = 4.0 * np.eye(3)
ENCUT = 30.0          # 27 plane waves at Γ for the 4 Å cube, coarse grid 5×5×5


@dataclass
class SyntheticWavecar:
    path: Path
    acell: np.ndarray
    encut: float
    kvecs: np.ndarray
    nspin: int
    nbands: int
    variant: WavecarType
    rtag: int
    efermi: float
    eigs: np.ndarray
    occs: np.ndarray
    bases: list
    coeffs: dict = field(default_factory=dict)
    record_len: int = 0

    @property
    def volume(self) -> float:
        return abs(float(np.linalg.det(self.acell)))


def random_coeffs(rng, basis, unit=True):
    n = basis.ncoeffs
    c = rng.normal(size=n) + 1j * rng.normal(size=n)
    if basis.variant.is_gamma_half:
        origin = np.all(basis.gvecs == 0, axis=1)
        c[origin] = c[origin].real
    if unit:
        c /= np.linalg.norm(c)
    return c


def write_wavecar(path, acell=CUBIC, encut=ENCUT, kvecs=((0.0, 0.0, 0.0),), nbands=4, *,
                  nspin=1, variant=WavecarType.STANDARD, rtag=RTAG_DOUBLE, efermi=0.0,
                  eigs=None, occs=None, coeffs=None, seed=0) -> SyntheticWavecar:
    """Write a WAVECAR whose band records hold `coeffs` (random unit vectors by default)."""
    acell = np.asarray(acell, dtype=float)
    bcell = np.linalg.inv(acell).T
    kvecs = np.atleast_2d(np.asarray(kvecs, dtype=float))
    nk = len(kvecs)
    ngrid = default_ngrid(acell, encut)
    bases = [generate_basis(k, encut, bcell, ngrid, variant) for k in kvecs]
    dtype = np.dtype("<c8") if rtag == RTAG_SINGLE else np.dtype("<c16")

    nplws = [b.ncoeffs for b in bases]
    recl = max(max(nplws) * dtype.itemsize, (4 + 3 * nbands) * 8, 13 * 8)
    recl = 8 * int(np.ceil(recl / 8))

    if eigs is None:
        eigs = np.tile(np.linspace(-3.0, 3.0, nbands), (nspin, nk, 1))
    eigs = np.asarray(eigs, dtype=float)
    if occs is None:
        occs = (eigs < efermi).astype(float)
    occs = np.asarray(occs, dtype=float)

    rng = np.random.default_rng(seed)
    coeffs = {} if coeffs is None else dict(coeffs)
    for isp in range(nspin):
        for ik in range(nk):
            for ib in range(nbands):
                if (isp, ik, ib) not in coeffs:
                    coeffs[(isp, ik, ib)] = random_coeffs(rng, bases[ik])

    buf = bytearray((2 + nspin * nk * (nbands + 1)) * recl)

    def put(irec, arr):
        raw = np.ascontiguousarray(arr).tobytes()
        buf[irec * recl: irec * recl + len(raw)] = raw

    put(0, np.array([recl, nspin, rtag], dtype="<f8"))
    put(1, np.concatenate(([nk, nbands, encut], acell.ravel(), [efermi])).astype("<f8"))
    for isp in range(nspin):
        for ik in range(nk):
            irec = 2 + isp * nk * (nbands + 1) + ik * (nbands + 1)
            info = np.zeros(4 + 3 * nbands)
            info[0] = nplws[ik]
            info[1:4] = kvecs[ik]
            info[4::3] = eigs[isp, ik]
            info[6::3] = occs[isp, ik]
            put(irec, info.astype("<f8"))
            for ib in range(nbands):
                put(irec + 1 + ib, np.asarray(coeffs[(isp, ik, ib)]).ravel().astype(dtype))

    path = Path(path)
    path.write_bytes(bytes(buf))
    return SyntheticWavecar(path=path, acell=acell, encut=encut, kvecs=kvecs, nspin=nspin,
                            nbands=nbands, variant=variant, rtag=rtag, efermi=efermi,
                            eigs=eigs, occs=occs, bases=bases, coeffs=coeffs, record_len=recl)


def hermitian_pair(rng, std_basis, half_basis):
    """
    Full-sphere coefficients C with C(-G) = C(G)* and the gamma-half record
    describing the same real wavefunction.
    """
    index = {tuple(g): n for n, g in enumerate(std_basis.gvecs)}
    full = np.zeros(len(std_basis), dtype=complex)
    half = np.zeros(len(half_basis), dtype=complex)
    for n, g in enumerate(half_basis.gvecs):
        if not g.any():
            c = rng.normal()
            full[index[tuple(g)]] = c
            half[n] = c
        else:
            c = rng.normal() + 1j * rng.normal()
            full[index[tuple(g)]] = c
            full[index[tuple(-g)]] = np.conj(c)
            half[n] = np.sqrt(2.0) * c
    scale = np.linalg.norm(full)
    return full / scale, half / scale


@pytest.fixture
def make_wavecar(tmp_path):
    counter = iter(range(1000))

    def _make(name=None, **kw):
        return write_wavecar(tmp_path / (name or f"WAVECAR_{next(counter)}"), **kw)

    return _make


@pytest.fixture
def standard_wavecar(make_wavecar):
    return make_wavecar("WAVECAR", kvecs=((0.0, 0.0, 0.0), (0.25, 0.0, 0.0)), nbands=4)


@pytest.fixture
def spinor_wavecar(make_wavecar):
    return make_wavecar("WAVECAR_ncl", kvecs=((0.0, 0.25, 0.0),), nbands=3,
                        variant=WavecarType.NONCOLLINEAR)


@pytest.fixture
def poscar(tmp_path):
    """4 Å simple-cubic one-atom POSCAR matching CUBIC."""
    path = tmp_path / "POSCAR"
    path.write_text(
        "cubic\n"
        "1.0\n"
        "  4.0 0.0 0.0\n"
        "  0.0 4.0 0.0\n"
        "  0.0 0.0 4.0\n"
        "H\n"
        "1\n"
        "Direct\n"
        "  0.0 0.0 0.0\n"
    )
    return path


@pytest.fixture(autouse=True)
def _reset_package_logger():
    """Undo handlers attached by the command-line driver so caplog sees records."""
    yield
    logger = logging.getLogger("wavekit")
    for h in list(logger.handlers):
        logger.removeHandler(h)
        h.close()
    logger.propagate = True
    logger.setLevel(logging.NOTSET)
