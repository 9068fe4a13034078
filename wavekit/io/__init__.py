
from .eigen_readers import (
    EigenvalReader, VASPEigenvalReader, get_eigenvalue_reader
)
from .wavecar import (
    WavecarHeader, KPoint, CoefficientSet, Wavecar, read_header, read_band_info
)
from .volumetric import write_vasp_grid, read_vasp_grid

__all__ = [
    "EigenvalReader","VASPEigenvalReader","get_eigenvalue_reader",
    "WavecarHeader","KPoint","CoefficientSet","Wavecar","read_header","read_band_info",
    "write_vasp_grid","read_vasp_grid",
]
