"""
Test fixtures for the imgal Python bindings.

Provides a stand-in for the native library whose exports are real C
function pointers (ctypes callbacks), so calls cross the same ctypes
boundary as calls into libimgal. The callbacks run pure-Python reference
implementations of the catalog operations.
"""

import builtins
import ctypes
import math
import threading
import time
from typing import Callable, Dict, Mapping, Optional

from imgal.binder import CATALOG, ArgKind, CallSignature
from imgal.lib import LibraryLoader

FAKE_LIBRARY_PATH = "/fake/libimgal.so"


# Reference implementations
def ref_sum(values):
    return builtins.sum(values, 0.0)


def ref_omega(period):
    return 2.0 * math.pi / period


def ref_abbe_diffraction_limit(wavelength, na):
    return wavelength / (2.0 * na)


def ref_midpoint(y, delta_x):
    return delta_x * ref_sum(y)


def ref_simpson(y, delta_x):
    n = len(y) - 1
    if n % 2 != 0:
        return math.nan
    integral = y[0] + y[n]
    for i in range(1, n):
        integral += (4.0 if i % 2 == 1 else 2.0) * y[i]
    return (delta_x / 3.0) * integral


def ref_composite_simpson(y, delta_x):
    n = len(y) - 1
    if n % 2 == 0:
        return ref_simpson(y, delta_x)
    return ref_simpson(y[:n], delta_x) + (delta_x / 2.0) * (y[n - 1] + y[n])


def _phasor(y, period, harmonic, omega, wave):
    dt = period / len(y)
    h_w_dt = harmonic * omega * dt
    transformed = [v * wave(h_w_dt * i) for i, v in enumerate(y)]
    return ref_midpoint(transformed, dt) / ref_midpoint(y, dt)


def ref_real(y, period, harmonic, omega):
    return _phasor(y, period, harmonic, omega, math.cos)


def ref_imaginary(y, period, harmonic, omega):
    return _phasor(y, period, harmonic, omega, math.sin)


REFERENCE: Dict[str, Callable[..., float]] = {
    "sum": ref_sum,
    "omega": ref_omega,
    "abbe_diffraction_limit": ref_abbe_diffraction_limit,
    "midpoint": ref_midpoint,
    "simpson": ref_simpson,
    "composite_simpson": ref_composite_simpson,
    "real": ref_real,
    "imaginary": ref_imaginary,
}


def _read_array(ptr, length):
    if not ptr or length == 0:
        return []
    return ptr[:length]


def native_export(signature: CallSignature, reference: Callable[..., float]):
    """Wrap a reference implementation as a C function pointer for ``signature``."""

    def trampoline(*c_args):
        args = []
        it = iter(c_args)
        for param in signature.params:
            if param.kind is ArgKind.ARRAY:
                ptr = next(it)
                args.append(_read_array(ptr, next(it)))
            else:
                args.append(next(it))
        return reference(*args)

    return signature.prototype()(trampoline)


class FakeCDLL:
    """
    Mimics ctypes.CDLL item access for a set of exported callbacks.

    Attributes:
        lookups: Number of symbol lookups per name.
    """

    def __init__(self, exports: Mapping[str, Callable[..., float]],
                 signatures: Mapping[str, CallSignature] = CATALOG):
        self._exports = {
            name: native_export(signatures[name], fn) for name, fn in exports.items()
        }
        self.lookups: Dict[str, int] = {}
        self._lock = threading.Lock()

    def __getitem__(self, name):
        with self._lock:
            self.lookups[name] = self.lookups.get(name, 0) + 1
        try:
            return self._exports[name]
        except KeyError:
            raise AttributeError(f"{FAKE_LIBRARY_PATH}: undefined symbol: {name}") from None


class FakeOpener:
    """
    Stand-in for ctypes.CDLL passed to LibraryLoader as ``open_library``.

    Counts how many times the library is opened, and can delay or fail.
    """

    def __init__(self, exports: Optional[Mapping[str, Callable[..., float]]] = None,
                 signatures: Mapping[str, CallSignature] = CATALOG,
                 delay: float = 0.0, error: Optional[BaseException] = None):
        self.exports = REFERENCE if exports is None else exports
        self.signatures = signatures
        self.delay = delay
        self.error = error
        self.calls = 0
        self.cdll: Optional[FakeCDLL] = None
        self._lock = threading.Lock()

    def __call__(self, path):
        with self._lock:
            self.calls += 1
        if self.delay:
            time.sleep(self.delay)
        if self.error is not None:
            raise self.error
        self.cdll = FakeCDLL(self.exports, self.signatures)
        return self.cdll


def make_loader(opener: Optional[FakeOpener] = None) -> LibraryLoader:
    """Return a LibraryLoader that opens a FakeCDLL instead of a real library."""
    return LibraryLoader(
        locate=lambda name: FAKE_LIBRARY_PATH,
        open_library=opener if opener is not None else FakeOpener(),
    )


def without(*names):
    """Reference exports minus ``names``."""
    return {name: fn for name, fn in REFERENCE.items() if name not in names}


def run_concurrently(target: Callable[[int], object], count: int):
    """
    Run ``target(i)`` on ``count`` threads released together.

    Returns:
        List of (result, exception) tuples indexed by thread number.
    """
    barrier = threading.Barrier(count)
    outcomes = [None] * count

    def worker(i):
        barrier.wait()
        try:
            outcomes[i] = (target(i), None)
        except BaseException as exc:
            outcomes[i] = (None, exc)

    threads = [threading.Thread(target=worker, args=(i,)) for i in range(count)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    return outcomes
