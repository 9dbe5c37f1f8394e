"""
Core imgal Python bindings.

Each function forwards to the native imgal library through the process-wide
bridge. The first call loads the library and binds every operation; any
failure there is raised by that call and by every later call.

THREAD SAFETY:
=============
All functions may be called concurrently from any number of threads.
Array arguments are copied into native memory owned by a single call and
released when that call returns or raises. Native calls release the GIL
while they run.

ARRAY ARGUMENTS:
===============
Array parameters accept any sized iterable of real numbers, or a buffer of
contiguous C doubles (``array.array('d')``, a 1-D float64 NumPy array),
which is copied without per-element conversion.
"""

from typing import Iterable

from .bridge import get_bridge


def sum(values: Iterable[float]) -> float:
    """
    Compute the sum of an array.

    Args:
        values: The numbers to sum.

    Returns:
        The sum. An empty array sums to 0.0.

    Example:
        >>> imgal.sum([1.0, 5.0, 10.0])
        16.0
    """
    return get_bridge().call("sum", values)


def omega(period: float) -> float:
    """
    Compute the angular frequency, 2π / period.

    Args:
        period: The period in seconds.
    """
    return get_bridge().call("omega", period)


def abbe_diffraction_limit(wavelength: float, na: float) -> float:
    """
    Compute Abbe's diffraction limit, wavelength / (2 * NA).

    Args:
        wavelength: The wavelength of light in nanometers.
        na: The numerical aperture of the objective.
    """
    return get_bridge().call("abbe_diffraction_limit", wavelength, na)


def midpoint(y: Iterable[float], delta_x: float) -> float:
    """Integrate sampled data with the midpoint rule."""
    return get_bridge().call("midpoint", y, delta_x)


def simpson(y: Iterable[float], delta_x: float) -> float:
    """
    Integrate sampled data with Simpson's 1/3 rule.

    Args:
        y: Evenly spaced samples. Must describe an even number of
            subintervals (an odd number of samples).
        delta_x: The width between samples.
    """
    return get_bridge().call("simpson", y, delta_x)


def composite_simpson(y: Iterable[float], delta_x: float) -> float:
    """
    Integrate sampled data with Simpson's 1/3 rule, closing an odd number
    of subintervals with the trapezoid rule.
    """
    return get_bridge().call("composite_simpson", y, delta_x)


def real(y: Iterable[float], period: float, harmonic: float, omega: float) -> float:
    """
    Compute the real (G) phasor component of a 1-dimensional decay curve.

    Args:
        y: The decay curve I(t).
        period: The period.
        harmonic: The harmonic value.
        omega: The angular frequency.
    """
    return get_bridge().call("real", y, period, harmonic, omega)


def imaginary(y: Iterable[float], period: float, harmonic: float, omega: float) -> float:
    """
    Compute the imaginary (S) phasor component of a 1-dimensional decay curve.

    Args:
        y: The decay curve I(t).
        period: The period.
        harmonic: The harmonic value.
        omega: The angular frequency.
    """
    return get_bridge().call("imaginary", y, period, harmonic, omega)
