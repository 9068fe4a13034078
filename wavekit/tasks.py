#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""
tasks.py — Task drivers for WAVEKIT
===================================
End-to-end drivers behind each `wavekit --task …`.  They select bands, push
per-band jobs through `ParallelDispatcher`, and serialize what comes back.

Tasks
------
- info    : header summary (optionally every eigenvalue/occupation) and a
            CSV band table.
- wav3d   : real-space wavefunction parts written as VASP volumetric files
            (ns, re, im, reim; uns/dns for noncollinear bands).
- sum     : |ψ|² summed over all selected bands (parallel reduction).
- wav1d   : plane-summed densities along one lattice axis, one column per
            band sorted by energy, written with numpy.savetxt.
- gap     : band-edge classification per spin (WAVECAR or EIGENVAL bands).
- tdm     : momentum / transition-dipole elements and a smeared spectrum.
- nac     : static model coupling arrays saved with numpy.savez_compressed.

File conventions
-----------------
Volumetric files hold ρ·V for densities and ψ·√V for real/imaginary parts,
so that the parts and densities of one band stay mutually consistent and
Σ(ρ·V)/N = 1 for a normalized band.  Names follow
`{prefix}_{spin}-{kpoint}-{band}[_{E-Ef}eV][_part].vasp` with 1-based labels.

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

import logging
from functools import partial

import numpy as np
from tqdm import tqdm

from .basis import WavecarType
from .gap import BandData, find_gaps, format_gaps
from .geometry import axis_coordinates, axis_index, check_lattice
from .grid import resolve_grid
from .io.eigen_readers import get_eigenvalue_reader
from .io.volumetric import write_vasp_grid
from .io.wavecar import Wavecar
from .parallel import TQDM_KW, ParallelDispatcher
from .quantities import axis_profile, elements_table, model_coupling, momentum_elements, tdm_spectrum
from .utils import eigen_suffix, output_name

logger = logging.getLogger(__name__)

_PART_ALIASES = {
    "normsquared": ("ns",), "ns": ("ns",),
    "real": ("re",), "re": ("re",),
    "imag": ("im",), "im": ("im",),
    "reim": ("re", "im"),
    "uns": ("uns",), "dns": ("dns",),
}


def open_wavecar(path: str, gamma_half: str | None = None) -> Wavecar:
    wav = Wavecar(path, gamma_half=gamma_half)
    if gamma_half is None and wav.wavecar_type.is_gamma_half:
        logger.warning("Current WAVECAR is gamma-halved; the x and z layouts can have the same "
                       "plane-wave count.  Set gamma_half to 'x' or 'z' to avoid confusion.")
    return wav


# ----------------------------------------------------------------------
#  info
# ----------------------------------------------------------------------
def run_info(wav: Wavecar, detail: bool = False, csv: str | None = None) -> str:
    text = wav.summary(detail=detail)
    if csv:
        wav.band_table().to_csv(csv, index=False, float_format="%.6f")
        logger.info(f"Band table written to {csv}")
    return text


# ----------------------------------------------------------------------
#  wav3d
# ----------------------------------------------------------------------
def normalize_parts(parts, variant: WavecarType) -> list[str]:
    """Expand aliases and reject parts the WAVECAR type cannot provide."""
    out: list[str] = []
    for p in parts:
        try:
            expanded = _PART_ALIASES[str(p).strip().lower()]
        except KeyError:
            raise ValueError(f"unknown output part {p!r}; choose from {sorted(_PART_ALIASES)}") from None
        out.extend(x for x in expanded if x not in out)
    if variant is not WavecarType.NONCOLLINEAR and {"uns", "dns"} & set(out):
        raise ValueError("output parts 'uns'/'dns' need a noncollinear WAVECAR")
    if variant.is_gamma_half and "im" in out:
        raise ValueError("gamma-half wavefunctions are real; there is no imaginary part to write")
    return out


def volumetric_parts(wf, parts):
    """Yield (file-name part, real grid) pairs for one Wavefunction."""
    vol, amp = wf.volume, np.sqrt(wf.volume)
    for part in parts:
        if part == "ns":
            yield "", wf.density() * vol
        elif part == "re":
            if wf.is_spinor:
                yield "_ure", wf.component("up").real * amp
                yield "_dre", wf.component("down").real * amp
            else:
                yield "_re", wf.real_part() * amp
        elif part == "im":
            if wf.is_spinor:
                yield "_uim", wf.component("up").imag * amp
                yield "_dim", wf.component("down").imag * amp
            else:
                yield "_im", wf.imag_part() * amp
        elif part == "uns":
            yield "_u", wf.density("up") * vol
        elif part == "dns":
            yield "_d", wf.density("down") * vol


def _wav3d_job(wavecar, job, *, atoms, parts, prefix, show_eigs_suffix,
               ngrid=None, normalization="volume", strict_grid=False):
    logger.info("Processing spin %d, k-point %3d, band %4d ...",
                job.ispin + 1, job.ikpoint + 1, job.iband + 1)
    wf = wavecar.get_wavefunction_realspace(job.ispin, job.ikpoint, job.iband, ngrid=ngrid,
                                            normalization=normalization, strict_grid=strict_grid)
    suffix = eigen_suffix(wf.energy - wavecar.efermi) if show_eigs_suffix else ""
    written = []
    for part, grid in volumetric_parts(wf, parts):
        fname = output_name(prefix, job.ispin, job.ikpoint, job.iband, suffix, part)
        write_vasp_grid(fname, atoms, grid)
        written.append(fname)
    return written


def run_wav3d(wav: Wavecar, atoms, jobs, parts=("ns",), prefix: str = "wav",
              show_eigs_suffix: bool = False, ngrid=None, normalization: str = "volume",
              strict_grid: bool = False, nprocs=None, backend: str = "process",
              progress: bool = True) -> list[str]:
    parts = normalize_parts(parts, wav.wavecar_type)
    check_lattice(atoms, wav.acell)
    func = partial(_wav3d_job, atoms=atoms, parts=parts, prefix=prefix,
                   show_eigs_suffix=show_eigs_suffix, ngrid=ngrid,
                   normalization=normalization, strict_grid=strict_grid)
    disp = ParallelDispatcher(wav, nprocs=nprocs, backend=backend, progress=progress, desc="wav3d")
    written = []
    for res in disp.map(func, jobs):
        if res.ok:
            written.extend(res.value)
    logger.info(f"wav3d: {len(written)} files written")
    return written


# ----------------------------------------------------------------------
#  summed density
# ----------------------------------------------------------------------
def common_grid(wav: Wavecar, jobs, ngrid=None, strict: bool = False):
    """One grid large enough for every k-point touched by `jobs`."""
    grids = [resolve_grid(ngrid, wav.basis(ik), wav.default_fine_grid, strict=strict)
             for ik in sorted({j.ikpoint for j in jobs})]
    return tuple(max(g[i] for g in grids) for i in range(3))


def _density_job(wavecar, job, *, ngrid, normalization="volume"):
    wf = wavecar.get_wavefunction_realspace(job.ispin, job.ikpoint, job.iband, ngrid=ngrid,
                                            normalization=normalization, strict_grid=True)
    return wf.density()


def sum_density(wav: Wavecar, jobs, ngrid=None, strict_grid: bool = False,
                normalization: str = "volume", nprocs=None, backend: str = "process",
                progress: bool = True) -> np.ndarray:
    """Σ_bands |ψ|² on a common grid, accumulated in the parent."""
    jobs = list(jobs)
    grid = common_grid(wav, jobs, ngrid, strict_grid)
    func = partial(_density_job, ngrid=grid, normalization=normalization)
    disp = ParallelDispatcher(wav, nprocs=nprocs, backend=backend, progress=progress, desc="density")
    total, failed = disp.reduce(func, jobs, np.add)
    if failed:
        logger.warning(f"{len(failed)} of {len(jobs)} bands left out of the summed density")
    if total is None:
        raise ValueError("no band contributed to the summed density")
    return total


def run_sum_density(wav: Wavecar, atoms, jobs, prefix: str = "wav", **kw) -> str:
    jobs = list(jobs)
    check_lattice(atoms, wav.acell)
    rho = sum_density(wav, jobs, **kw)
    fname = f"{prefix}_sum.vasp"
    write_vasp_grid(fname, atoms, rho * wav.volume)
    logger.info(f"Summed density of {len(jobs)} bands written to {fname}")
    return fname


# ----------------------------------------------------------------------
#  wav1d
# ----------------------------------------------------------------------
def _profile_job(wavecar, job, *, axis, scale, ngrid=None, strict_grid=False):
    logger.info("Processing spin %d, k-point %3d, band %4d ...",
                job.ispin + 1, job.ikpoint + 1, job.iband + 1)
    wf = wavecar.get_wavefunction_realspace(job.ispin, job.ikpoint, job.iband, ngrid=ngrid,
                                            normalization="volume", strict_grid=strict_grid)
    # fraction of the band per grid plane
    prof = axis_profile(wf, axis, "density") * wf.volume / wf.npoints
    return wf.energy, prof * scale


def run_wav1d(wav: Wavecar, jobs, axis="z", scale: float = 10.0, txtout: str | None = "wav1d.txt",
              ngrid=None, strict_grid: bool = False, nprocs=None, backend: str = "process",
              progress: bool = True):
    """
    Returns (distance, profiles, labels), profiles sorted by energy, highest
    first.  Bands on different k-points must share the grid along `axis`.
    """
    jobs = list(jobs)
    axis_index(axis)
    if ngrid is None:
        ngrid = common_grid(wav, jobs, None, strict_grid)
    func = partial(_profile_job, axis=axis, scale=scale, ngrid=ngrid, strict_grid=strict_grid)
    disp = ParallelDispatcher(wav, nprocs=nprocs, backend=backend, progress=progress, desc="wav1d")

    rows = []
    for res in disp.map(func, jobs):
        if not res.ok:
            continue
        energy, prof = res.value
        eig = energy - wav.efermi
        j = res.job
        rows.append((eig, f"s{j.ispin + 1}_k{j.ikpoint + 1}_b{j.iband + 1}_{eig:06.3f}eV", prof))
    if not rows:
        raise ValueError("no band profile could be computed")
    rows.sort(key=lambda r: r[0], reverse=True)

    npts = {len(r[2]) for r in rows}
    if len(npts) != 1:
        raise ValueError(f"profiles have different lengths {sorted(npts)}; pass an explicit grid")
    x = axis_coordinates(wav.acell, npts.pop(), axis)
    labels = [r[1] for r in rows]
    data = np.column_stack([x] + [r[2] for r in rows])

    if txtout:
        np.savetxt(txtout, data, fmt="%12.6f", header="Distance(A) " + " ".join(labels))
        logger.info(f"Writing to {txtout}")
    return x, data[:, 1:], labels


# ----------------------------------------------------------------------
#  gap
# ----------------------------------------------------------------------
def load_band_data(wavecar: str | None = "WAVECAR", eigenval: str | None = None,
                   gamma_half: str | None = None) -> BandData:
    """Bands from EIGENVAL when given, else from the WAVECAR band-info records."""
    if eigenval:
        logger.info(f"Reading band energies from {eigenval}")
        return get_eigenvalue_reader("vasp", eigenval).read()
    logger.info(f"Reading band energies from {wavecar}")
    with Wavecar(wavecar, gamma_half=gamma_half) as wav:
        return wav.band_data()


def run_gap(bands: BandData, threshold: float = 0.5, partial_tol: float = 0.01):
    results = find_gaps(bands, threshold=threshold, partial_tol=partial_tol)
    return results, format_gaps(results)


# ----------------------------------------------------------------------
#  tdm
# ----------------------------------------------------------------------
def run_tdm(wav: Wavecar, ispins, ikpoints, ibands, jbands=None, sigma: float = 0.05,
            peakout: str | None = "tdm_peaks.csv", txtout: str | None = "tdm_smeared.txt"):
    """Elements of every selected spin and k-point, one peak table and one spectrum."""
    elements = []
    for isp in ispins:
        for ik in ikpoints:
            elements.extend(momentum_elements(wav, isp, ik, ibands, jbands))
    if not elements:
        raise ValueError("no band pair with j > i was selected")
    table = elements_table(elements)
    egrid, spec = tdm_spectrum(elements, sigma=sigma)
    if peakout:
        table.to_csv(peakout, index=False, float_format="%.6f")
        logger.info(f"TDM peaks written to {peakout}")
    if txtout:
        np.savetxt(txtout, np.column_stack((egrid, spec)), fmt="%12.6f",
                   header=f"E(eV) sum|T|^2 (Debye^2/eV), sigma = {sigma} eV")
        logger.info(f"Smeared TDM written to {txtout}")
    return elements, table, (egrid, spec)


# ----------------------------------------------------------------------
#  model NAC
# ----------------------------------------------------------------------
def run_nac(wav: Wavecar, ikpoint: int, brange, nsteps: int = 9, potim: float = 1.0,
            output: str | None = "NAC-0K.npz", progress: bool = True):
    bar = partial(tqdm, desc="pij", **dict(TQDM_KW, disable=not progress or TQDM_KW["disable"]))
    mc = model_coupling(wav, ikpoint, brange, nsteps=nsteps, potim=potim, progress=bar)
    if output:
        np.savez_compressed(output, **mc.to_dict())
        logger.info(f"Model NAC written to {output}")
    return mc


__all__ = [
    "open_wavecar",
    "run_info",
    "normalize_parts",
    "volumetric_parts",
    "run_wav3d",
    "common_grid",
    "sum_density",
    "run_sum_density",
    "run_wav1d",
    "load_band_data",
    "run_gap",
    "run_tdm",
    "run_nac",
]
