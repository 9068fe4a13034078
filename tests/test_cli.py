import glob
import os

import pytest

from wavekit.cli import _extract_input_file_from_argv, parse_arguments
from wavekit.main import main
from wavekit.parallel import TQDM_KW
from wavekit.template import _normalize_template_flags


@pytest.fixture
def workdir(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setitem(TQDM_KW, "disable", False)
    return tmp_path


def test_defaults(workdir):
    args = parse_arguments([])
    assert args.task == "wav3d"
    assert (args.ispins, args.ikpoints, args.ibands) == ([1], [1], [1])
    assert args.ngrid is None and args.jbands is None
    assert args.normalization == "volume"
    assert args.output_parts == ["ns"]
    assert args.backend == "process" and args.nprocs is None


def test_flags_and_ranges(workdir):
    args = parse_arguments(["--task", "WAV1D", "-s", "1 2", "-k", "2..3", "-b", "1..3 7",
                            "--ngrid", "6", "8", "10", "--axis", "X", "-j", "0", "--gamma_half", "Z"])
    assert args.task == "wav1d"
    assert args.ispins == [1, 2]
    assert args.ikpoints == [2, 3]
    assert args.ibands == [1, 2, 3, 7]
    assert args.ngrid == (6, 8, 10)
    assert args.axis == "x"
    assert args.nprocs is None
    assert args.gamma_half == "z"


@pytest.mark.parametrize("argv", [
    ["-b", "3..1"],
    ["--ngrid", "6", "6"],
    ["--task", "nac"],
    ["--task", "nac", "--brange", "4"],
    ["--sigma", "0"],
    ["--output_parts", "phase"],
])
def test_bad_arguments_exit(workdir, argv):
    with pytest.raises(SystemExit) as exc:
        parse_arguments(argv)
    assert exc.value.code == 2


def test_input_file_layer(workdir):
    (workdir / "run.inp").write_text(
        "[WAVEKIT]\n"
        "task = wav1d        # profiles\n"
        "ibands = 2..3\n"
        "scale = 5\n"
        "strict_grid = true\n"
        "output_parts = re, im\n"
        "nprocs =\n"
        "brange = 1 4\n"
    )
    argv = ["--input_file", "run.inp", "--scale", "7"]
    assert _extract_input_file_from_argv(argv) == "run.inp"
    assert _extract_input_file_from_argv(["--input_file=x.inp"]) == "x.inp"
    args = parse_arguments(argv)
    assert args.task == "wav1d"
    assert args.ibands == [2, 3]
    assert args.scale == 7.0
    assert args.strict_grid is True
    assert args.output_parts == ["re", "im"]
    assert args.nprocs is None
    assert args.brange == [1, 4]


def test_input_file_errors(workdir):
    (workdir / "wavekit.inp").write_text("[OTHER]\ntask = info\n")
    with pytest.raises(ValueError, match=r"\[WAVEKIT\]"):
        parse_arguments([])
    (workdir / "wavekit.inp").write_text("[WAVEKIT]\nnsteps = many\n")
    with pytest.raises(ValueError, match="nsteps"):
        parse_arguments([])


def test_template_flags():
    assert _normalize_template_flags(["-0"]) == ["--template"]
    assert _normalize_template_flags(["-", "input", "--task", "gap"]) == ["--template", "--task", "gap"]
    assert _normalize_template_flags(["-b", "0"]) == ["-b", "0"]


def test_template_written_and_parseable(workdir, capsys):
    with pytest.raises(SystemExit) as exc:
        main(["-T"])
    assert exc.value.code == 0
    assert os.path.exists("wavekit.inp")
    assert "created" in capsys.readouterr().out

    args = parse_arguments([])
    assert args.task == "wav3d"
    assert args.brange == [1, 2]
    assert args.eigenval is None and args.gamma_half is None

    with pytest.raises(SystemExit):
        main(["--template"])
    assert "already exists" in capsys.readouterr().out


def test_main_wav3d(standard_wavecar, poscar, workdir):
    main(["--task", "wav3d", "-k", "2", "-b", "1..2", "--ngrid", "6", "6", "6",
          "--output_parts", "ns", "re", "--backend", "serial", "--sum_density", "-q"])
    for name in ("wav_1-2-1.vasp", "wav_1-2-1_re.vasp", "wav_1-2-2.vasp", "wav_1-2-2_re.vasp",
                 "wav_sum.vasp"):
        assert os.path.exists(name)
    assert len(glob.glob("run_*.log")) == 1


def test_main_info_and_gap(standard_wavecar, workdir, capsys):
    main(["--task", "info", "--prefix", "syn"])
    assert os.path.exists("syn_bands.csv")
    main(["--task", "gap"])
    out = capsys.readouterr().out
    assert "NBANDS = 4" in out
    assert "Current system has" in out and "Direct Gap" in out
    assert "Gap Info For" not in out


def test_main_gap_spin_polarized(make_wavecar, workdir, capsys):
    make_wavecar("WAVECAR", nspin=2, nbands=4)
    main(["--task", "gap"])
    out = capsys.readouterr().out
    assert out.count("Gap Info For") == 2
    assert "SPIN UP" in out and "SPIN DOWN" in out


def test_main_tdm_and_nac(standard_wavecar, workdir):
    main(["--task", "tdm", "-k", "1..2", "-b", "1..3"])
    assert os.path.exists("wav_tdm_peaks.csv")
    assert os.path.exists("wav_tdm_smeared.txt")
    main(["--task", "nac", "-k", "1 2", "--brange", "1", "3", "--nsteps", "2", "-q"])
    assert os.path.exists("NAC-0K_k1.npz") and os.path.exists("NAC-0K_k2.npz")


def test_main_failures_exit_nonzero(workdir, capsys):
    with pytest.raises(SystemExit) as exc:
        main(["--task", "info", "--wavecar", "missing"])
    assert exc.value.code == 1
    assert "not found" in capsys.readouterr().out

    (workdir / "wavekit.inp").write_text("[WAVEKIT]\nsigma = wide\n")
    with pytest.raises(SystemExit) as exc:
        main([])
    assert exc.value.code == 1
    assert "sigma" in capsys.readouterr().err
