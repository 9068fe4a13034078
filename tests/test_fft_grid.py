import logging

import numpy as np
import pytest

from wavekit.basis import WavecarType, generate_basis
from wavekit.errors import GridTooSmallError, ZeroNormError
from wavekit.fft import cell_norm, forward_transform, inverse_transform, normalize_field
from wavekit.grid import check_grid, resolve_grid, to_grid, wrap_indices

from conftest import CUBIC, ENCUT

BCELL = np.linalg.inv(CUBIC).T


def _basis(variant=WavecarType.STANDARD, kvec=(0.0, 0.0, 0.0)):
    return generate_basis(kvec, ENCUT, BCELL, (5, 5, 5), variant)


def test_wrap_negative_indices():
    ix, iy, iz = wrap_indices(np.array([[-1, 0, 2], [1, -2, -1]]), (4, 5, 6))
    assert ix.tolist() == [3, 1]
    assert iy.tolist() == [0, 3]
    assert iz.tolist() == [2, 5]


def test_grid_placement_standard():
    basis = _basis()
    coeffs = np.arange(1, len(basis) + 1) * (1 + 0.5j)
    grid = to_grid(basis, coeffs, (6, 6, 6))
    assert grid.shape == (6, 6, 6)
    for g, c in zip(basis.gvecs, coeffs):
        assert grid[tuple(np.mod(g, 6))] == c
    assert np.count_nonzero(grid) == len(basis)


def test_hermitian_fill_is_conjugate_symmetric():
    basis = _basis(WavecarType.GAMMA_HALF_X)
    rng = np.random.default_rng(1)
    coeffs = rng.normal(size=len(basis)) + 1j * rng.normal(size=len(basis))
    grid = to_grid(basis, coeffs, (5, 5, 5))
    # G(-g) == conj(G(g)) everywhere on the grid
    flipped = np.roll(grid[::-1, ::-1, ::-1], 1, axis=(0, 1, 2))
    np.testing.assert_allclose(flipped, np.conj(grid))
    assert grid[0, 0, 0] == pytest.approx(coeffs[0].real)


def test_spinor_grid_has_two_components():
    basis = _basis(WavecarType.NONCOLLINEAR)
    coeffs = np.ones(basis.ncoeffs, dtype=complex)
    coeffs[len(basis):] = 2.0
    grid = to_grid(basis, coeffs, (5, 5, 5))
    assert grid.shape == (2, 5, 5, 5)
    assert grid[1].sum() == pytest.approx(2 * grid[0].sum())


def test_grid_too_small():
    basis = _basis()
    with pytest.raises(GridTooSmallError) as exc:
        check_grid((2, 5, 5), basis)
    assert exc.value.minimum == (3, 3, 3)
    with pytest.raises(GridTooSmallError):
        to_grid(basis, np.ones(len(basis)), (5, 5, 2))


def test_resolve_grid_enlarges_or_raises(caplog):
    basis = _basis()
    assert resolve_grid(None, basis, (10, 10, 10)) == (10, 10, 10)
    with caplog.at_level(logging.WARNING):
        assert resolve_grid((2, 8, 1), basis, (10, 10, 10)) == (3, 8, 3)
    assert "too small" in caplog.text
    with pytest.raises(GridTooSmallError):
        resolve_grid((2, 8, 1), basis, (10, 10, 10), strict=True)


def test_forward_inverse_round_trip():
    rng = np.random.default_rng(3)
    grid = rng.normal(size=(4, 6, 5)) + 1j * rng.normal(size=(4, 6, 5))
    np.testing.assert_allclose(forward_transform(inverse_transform(grid)), grid, atol=1e-12)


def test_single_plane_wave():
    grid = np.zeros((4, 4, 4), dtype=complex)
    grid[1, 0, 0] = 1.0
    field = inverse_transform(grid)
    x = np.arange(4) / 4
    np.testing.assert_allclose(field[:, 0, 0], np.exp(2j * np.pi * x), atol=1e-12)


def test_volume_normalization():
    rng = np.random.default_rng(4)
    field = rng.normal(size=(4, 4, 4)) + 1j * rng.normal(size=(4, 4, 4))
    out = normalize_field(field, volume=64.0)
    assert cell_norm(out, 64.0) == pytest.approx(1.0)
    assert normalize_field(field, 64.0, "none") is field
    with pytest.raises(ValueError):
        normalize_field(field, 64.0, "bogus")
    with pytest.raises(ZeroNormError, match="= 0.0"):
        normalize_field(np.zeros((2, 2, 2)), 64.0)
