import numpy as np
import pytest

from wavekit.basis import WavecarType
from wavekit.constants import RTAG_SINGLE
from wavekit.errors import BasisMismatchError, FormatError, WavecarIndexError
from wavekit.io.wavecar import Wavecar, band_info_record, band_record


def test_record_indices():
    # spin 0 / k 0 info sits right after the two header records
    assert band_info_record(0, 0, nkpoints=3, nbands=4) == 2
    assert band_record(0, 0, 0, nkpoints=3, nbands=4) == 3
    assert band_info_record(0, 1, nkpoints=3, nbands=4) == 7
    assert band_info_record(1, 0, nkpoints=3, nbands=4) == 2 + 3 * 5
    assert band_record(1, 2, 3, nkpoints=3, nbands=4) == 2 + 15 + 10 + 4


def test_header_fields(standard_wavecar):
    syn = standard_wavecar
    with Wavecar(syn.path) as wav:
        h = wav.header
        assert h.record_len == syn.record_len
        assert h.precision == "double"
        assert (wav.nspin, wav.nkpoints, wav.nbands) == (1, 2, 4)
        assert wav.encut == pytest.approx(syn.encut)
        np.testing.assert_allclose(wav.acell, syn.acell)
        np.testing.assert_allclose(wav.bcell @ wav.acell.T, np.eye(3), atol=1e-12)
        assert wav.volume == pytest.approx(64.0)
        assert wav.ngrid == (5, 5, 5)
        assert wav.default_fine_grid == (10, 10, 10)
        assert wav.wavecar_type is WavecarType.STANDARD
        np.testing.assert_allclose(wav.kvecs, syn.kvecs)
        np.testing.assert_allclose(wav.band_eigs, syn.eigs)
        np.testing.assert_allclose(wav.band_occs, syn.occs)
        assert wav.kpoints[1].weight == pytest.approx(0.5)


def test_decode_matches_written_coefficients(standard_wavecar):
    syn = standard_wavecar
    with Wavecar(syn.path) as wav:
        for ik in range(2):
            basis = wav.basis(ik)
            np.testing.assert_array_equal(basis.gvecs, syn.bases[ik].gvecs)
            for ib in range(4):
                cs = wav.read_coeffs(0, ik, ib)
                assert len(cs) == len(basis)
                np.testing.assert_allclose(cs.coeffs, syn.coeffs[(0, ik, ib)])


def test_single_precision(make_wavecar):
    syn = make_wavecar(rtag=RTAG_SINGLE, nbands=2)
    with Wavecar(syn.path) as wav:
        assert wav.header.precision == "single"
        cs = wav.read_coeffs(0, 0, 1)
        assert cs.coeffs.dtype == np.complex128
        np.testing.assert_allclose(cs.coeffs, syn.coeffs[(0, 0, 1)], rtol=1e-6, atol=1e-7)


def test_spin_polarized_records(make_wavecar):
    eigs = np.array([[[-1.0, 1.0]], [[-0.5, 1.5]]])
    syn = make_wavecar(nspin=2, nbands=2, eigs=eigs)
    with Wavecar(syn.path) as wav:
        assert wav.nspin == 2
        np.testing.assert_allclose(wav.band_eigs, eigs)
        np.testing.assert_allclose(wav.read_coeffs(1, 0, 0).coeffs, syn.coeffs[(1, 0, 0)])


def test_noncollinear_detected(spinor_wavecar):
    syn = spinor_wavecar
    with Wavecar(syn.path) as wav:
        assert wav.wavecar_type is WavecarType.NONCOLLINEAR
        cs = wav.read_coeffs(0, 0, 2)
        assert cs.is_spinor
        assert cs.coeffs.shape == (2, len(wav.basis(0)))
        np.testing.assert_allclose(cs.coeffs.ravel(), syn.coeffs[(0, 0, 2)])


def test_gamma_half_detection_and_override(make_wavecar):
    syn = make_wavecar(variant=WavecarType.GAMMA_HALF_X, nbands=2)
    with Wavecar(syn.path) as wav:
        # at Γ both halves have the same size; x is reported
        assert wav.wavecar_type is WavecarType.GAMMA_HALF_X
    with Wavecar(syn.path, gamma_half="z") as wav:
        assert wav.wavecar_type is WavecarType.GAMMA_HALF_Z
    with pytest.raises(BasisMismatchError):
        Wavecar(make_wavecar(nbands=2).path, gamma_half="x")


def test_index_errors(standard_wavecar):
    with Wavecar(standard_wavecar.path) as wav:
        for args in ((1, 0, 0), (0, 2, 0), (0, 0, 4), (0, -1, 0)):
            with pytest.raises(WavecarIndexError) as exc:
                wav.read_coeffs(*args)
            assert isinstance(exc.value, IndexError)
        with pytest.raises(IndexError, match="band index 4 out of range"):
            wav.get_wavefunction_realspace(0, 0, 4)


def test_truncated_file(make_wavecar):
    syn = make_wavecar(nbands=3)
    data = syn.path.read_bytes()
    syn.path.write_bytes(data[: len(data) - syn.record_len // 2])
    with Wavecar(syn.path) as wav:
        wav.read_coeffs(0, 0, 0)
        with pytest.raises(FormatError, match="truncated") as exc:
            wav.read_coeffs(0, 0, 2)
    assert exc.value.offset == 5 * syn.record_len


def test_truncated_header(tmp_path):
    path = tmp_path / "WAVECAR"
    path.write_bytes(np.array([512.0, 1.0], dtype="<f8").tobytes())
    with pytest.raises(FormatError):
        Wavecar(path)


def test_bad_rtag(make_wavecar):
    syn = make_wavecar(nbands=2)
    data = bytearray(syn.path.read_bytes())
    data[16:24] = np.array([12345.0], dtype="<f8").tobytes()
    syn.path.write_bytes(bytes(data))
    with pytest.raises(FormatError, match="precision tag 12345"):
        Wavecar(syn.path)


def test_bad_spin_count(make_wavecar):
    syn = make_wavecar(nbands=2)
    data = bytearray(syn.path.read_bytes())
    data[8:16] = np.array([3.0], dtype="<f8").tobytes()
    syn.path.write_bytes(bytes(data))
    with pytest.raises(FormatError, match="spin count"):
        Wavecar(syn.path)


def test_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        Wavecar(tmp_path / "nope")


def test_band_table_and_summary(standard_wavecar):
    with Wavecar(standard_wavecar.path) as wav:
        df = wav.band_table()
        assert len(df) == 1 * 2 * 4
        assert df["band"].min() == 1 and df["kpoint"].max() == 2
        text = wav.summary(detail=True)
        assert "NBANDS = 4" in text
        assert "k-point    2" in text


def test_band_data_shapes(standard_wavecar):
    with Wavecar(standard_wavecar.path) as wav:
        bands = wav.band_data()
    assert (bands.nspin, bands.nkpoints, bands.nbands) == (1, 2, 4)
    np.testing.assert_allclose(bands.weights, [0.5, 0.5])


def test_concurrent_reads_share_one_handle(standard_wavecar):
    from concurrent.futures import ThreadPoolExecutor

    with Wavecar(standard_wavecar.path) as wav:
        ref = [wav.read_coeffs(0, ik, ib).coeffs for ik in range(2) for ib in range(4)]
        with ThreadPoolExecutor(4) as ex:
            got = list(ex.map(lambda n: wav.read_coeffs(0, n // 4, n % 4).coeffs, range(8)))
    for a, b in zip(ref, got):
        np.testing.assert_array_equal(a, b)
