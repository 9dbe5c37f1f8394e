"""
imgal Python Bindings

Numerical routines from the native imgal library, called through ctypes.

Example:
    >>> import imgal
    >>> imgal.sum([1.0, 5.0, 10.0])
    16.0
    >>> imgal.abbe_diffraction_limit(520.0, 1.4)
    185.71428571428572
"""

import logging

from .core import (
    sum,
    omega,
    abbe_diffraction_limit,
    midpoint,
    simpson,
    composite_simpson,
    real,
    imaginary,
)

from .errors import (
    ImgalError,
    ResourceMissing,
    IOFailure,
    LoadFailure,
    SymbolNotFound,
    SignatureMismatch,
    NativeCallFailure,
)

from .bridge import Bridge, BridgeState, get_bridge
from .lib import get_library_path, load_library

logging.getLogger(__name__).addHandler(logging.NullHandler())

__version__ = "0.1.0"
__all__ = [
    "sum",
    "omega",
    "abbe_diffraction_limit",
    "midpoint",
    "simpson",
    "composite_simpson",
    "real",
    "imaginary",
    "ImgalError",
    "ResourceMissing",
    "IOFailure",
    "LoadFailure",
    "SymbolNotFound",
    "SignatureMismatch",
    "NativeCallFailure",
    "Bridge",
    "BridgeState",
    "get_bridge",
    "get_library_path",
    "load_library",
]
