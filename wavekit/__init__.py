# wavekit/__init__.py
__version__ = "1.0.0"

from .state import STATE, RuntimeState  # lightweight and safe
from .errors import (
    WavekitError, FormatError, WavecarIndexError, BasisMismatchError,
    GridTooSmallError, InvalidPairError, ZeroNormError,
)
from .basis import Basis, WavecarType, generate_basis
from .wavefunction import Wavefunction
from .io.wavecar import Wavecar
from .parallel import Job, JobResult, ParallelDispatcher, make_jobs

__all__ = [
    "STATE", "RuntimeState", "__version__",
    "WavekitError", "FormatError", "WavecarIndexError", "BasisMismatchError",
    "GridTooSmallError", "InvalidPairError", "ZeroNormError",
    "Basis", "WavecarType", "generate_basis",
    "Wavefunction", "Wavecar",
    "Job", "JobResult", "ParallelDispatcher", "make_jobs",
]
