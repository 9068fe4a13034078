#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""
errors.py — Exception hierarchy for WAVEKIT
===========================================
All failures raised by the wavefunction engine derive from
``WavekitError`` and carry the offending values (byte offset, index,
plane-wave counts, grid sizes) so that callers can print an actionable
message.

- FormatError         : malformed or truncated header / record (fatal).
- WavecarIndexError   : spin/k-point/band index outside the declared bounds.
                        Also an ``IndexError``.
- BasisMismatchError  : regenerated basis size ≠ declared plane-wave count.
- GridTooSmallError   : requested FFT grid cannot hold the basis.
- InvalidPairError    : band pair with j ≤ i requested for momentum elements.
- ZeroNormError       : band with no weight cannot be volume-normalized.
                        Also a ``ValueError``.
"""

from __future__ import annotations


class WavekitError(Exception):
    """Base exception for the wavefunction engine."""


class FormatError(WavekitError):
    """Raised when the WAVECAR header or a record is malformed or truncated."""

    def __init__(self, message: str, offset: int | None = None) -> None:
        self.offset = offset
        self.reason = message
        if offset is not None:
            message = f"{message} (byte offset {offset})"
        super().__init__(message)

    def __reduce__(self):
        return self.__class__, (self.reason, self.offset)


class WavecarIndexError(WavekitError, IndexError):
    """Raised when a spin, k-point or band index is out of range."""

    def __init__(self, name: str, index: int, bound: int) -> None:
        self.name = name
        self.index = index
        self.bound = bound
        super().__init__(
            f"{name} index {index} out of range, valid range is 0..{bound - 1}"
        )

    def __reduce__(self):
        return self.__class__, (self.name, self.index, self.bound)


class BasisMismatchError(WavekitError):
    """Raised when the regenerated plane-wave basis disagrees with the header."""

    def __init__(self,
                 ikpoint: int,
                 expected: int,
                 got: int,
                 variant: str | None = None,
                 message: str | None = None) -> None:
        self.ikpoint = ikpoint
        self.expected = expected
        self.got = got
        self.variant = variant
        self.reason = message
        msg = message or (
            f"basis mismatch at k-point {ikpoint}: header declares {expected} "
            f"coefficients, regenerated basis gives {got}"
        )
        if variant is not None:
            msg += f" (variant {variant})"
        msg += ". Check the cutoff, the lattice and the gamma-half direction."
        super().__init__(msg)

    def __reduce__(self):
        return self.__class__, (self.ikpoint, self.expected, self.got, self.variant, self.reason)


class GridTooSmallError(WavekitError):
    """Raised when an FFT grid is smaller than the basis requires."""

    def __init__(self, requested, minimum) -> None:
        self.requested = tuple(int(n) for n in requested)
        self.minimum = tuple(int(n) for n in minimum)
        super().__init__(
            f"FFT grid {self.requested} cannot hold the plane-wave basis, "
            f"minimum is {self.minimum}"
        )

    def __reduce__(self):
        return self.__class__, (self.requested, self.minimum)


class InvalidPairError(WavekitError):
    """Raised for band pairs that are not meaningful (j must exceed i)."""

    def __init__(self, iband: int, jband: int) -> None:
        self.iband = iband
        self.jband = jband
        super().__init__(
            f"invalid band pair (i={iband}, j={jband}): final band j must be above initial band i"
        )

    def __reduce__(self):
        return self.__class__, (self.iband, self.jband)


class ZeroNormError(WavekitError, ValueError):
    """Raised when a band reconstructs to a field with no weight (e.g. an all-zero record)."""

    def __init__(self, norm: float) -> None:
        self.norm = norm
        super().__init__(f"cannot normalize a field with ∫|ψ|² = {norm}")

    def __reduce__(self):
        return self.__class__, (self.norm,)


__all__ = [
    "WavekitError",
    "FormatError",
    "WavecarIndexError",
    "BasisMismatchError",
    "GridTooSmallError",
    "InvalidPairError",
    "ZeroNormError",
]
