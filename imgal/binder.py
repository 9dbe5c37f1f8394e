"""
Call signatures, the operation catalog, and symbol binding.

Every native operation takes a fixed list of parameters, each either a
scalar double passed by value or an array of doubles passed as a
(pointer, length) pair, and returns a double.
"""

import ctypes
import enum
import logging
import threading
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

from .errors import SignatureMismatch, SymbolNotFound

logger = logging.getLogger(__name__)


class ArgKind(enum.Enum):
    SCALAR = "scalar"
    ARRAY = "array"


@dataclass(frozen=True)
class Param:
    name: str
    kind: ArgKind


@dataclass(frozen=True)
class CallSignature:
    """
    The calling contract of a native operation.

    Attributes:
        params: Logical parameters in call order.
        restype: ctypes type of the scalar return value.
    """

    params: Tuple[Param, ...]
    restype: Any = ctypes.c_double

    @classmethod
    def of(cls, *params: Tuple[str, ArgKind]) -> "CallSignature":
        """Build a signature from (name, kind) pairs."""
        return cls(tuple(Param(name, kind) for name, kind in params))

    @property
    def arity(self) -> int:
        return len(self.params)

    @property
    def array_count(self) -> int:
        return len([p for p in self.params if p.kind is ArgKind.ARRAY])

    def native_argtypes(self) -> List[Any]:
        """ctypes argument types of the C function, arrays expanded to pointer and length."""
        argtypes: List[Any] = []
        for param in self.params:
            if param.kind is ArgKind.ARRAY:
                argtypes.extend([ctypes.POINTER(ctypes.c_double), ctypes.c_size_t])
            else:
                argtypes.append(ctypes.c_double)
        return argtypes

    def prototype(self):
        """Return the ctypes.CFUNCTYPE prototype for this signature."""
        return ctypes.CFUNCTYPE(self.restype, *self.native_argtypes())

    def describe(self) -> str:
        return "(" + ", ".join(f"{p.name}: {p.kind.value}" for p in self.params) + ")"


@dataclass(frozen=True)
class CallHandle:
    """
    A native symbol bound to its CallSignature.

    Valid while ``library`` is alive; holding the handle keeps it alive.
    ``function`` is the ctypes foreign function called by the marshaller.
    """

    name: str
    signature: CallSignature
    address: int
    function: Callable[..., float]
    library: Any = field(default=None, repr=False, compare=False)

    def __repr__(self) -> str:
        return f"CallHandle({self.name}{self.signature.describe()} @ {self.address:#x})"


SCALAR = ArgKind.SCALAR
ARRAY = ArgKind.ARRAY

# Native operations exported by libimgal, keyed by symbol name
CATALOG: Mapping[str, CallSignature] = MappingProxyType({
    # statistics
    "sum": CallSignature.of(("input", ARRAY)),
    # parameters
    "omega": CallSignature.of(("period", SCALAR)),
    "abbe_diffraction_limit": CallSignature.of(("wavelength", SCALAR), ("na", SCALAR)),
    # integration
    "midpoint": CallSignature.of(("y", ARRAY), ("delta_x", SCALAR)),
    "simpson": CallSignature.of(("y", ARRAY), ("delta_x", SCALAR)),
    "composite_simpson": CallSignature.of(("y", ARRAY), ("delta_x", SCALAR)),
    # phasor, time domain
    "real": CallSignature.of(
        ("y", ARRAY), ("period", SCALAR), ("harmonic", SCALAR), ("omega", SCALAR)
    ),
    "imaginary": CallSignature.of(
        ("y", ARRAY), ("period", SCALAR), ("harmonic", SCALAR), ("omega", SCALAR)
    ),
})


class Binder:
    """
    Resolves symbols of one loaded library into CallHandles.

    Binding is idempotent: a name is resolved against the library only the
    first time it is bound.

    Args:
        library: Object with a ``lookup(name) -> Optional[int]`` method,
            normally a LibraryHandle.
    """

    def __init__(self, library):
        self.library = library
        self._handles: Dict[str, CallHandle] = {}
        self._lock = threading.Lock()

    def bind(self, name: str, signature: CallSignature) -> CallHandle:
        """
        Bind an exported symbol to a signature.

        Raises:
            SymbolNotFound: If the library does not export ``name``.
            SignatureMismatch: If ``name`` was already bound with a different
                signature.
        """
        with self._lock:
            handle = self._handles.get(name)
            if handle is not None:
                if handle.signature != signature:
                    raise SignatureMismatch.create(
                        f"already bound as {name}{handle.signature.describe()}, "
                        f"not {name}{signature.describe()}",
                        operation=f"Bind '{name}'",
                    )
                return handle

            address = self.library.lookup(name)
            if not address:
                raise SymbolNotFound.create(
                    f"'{name}' is not exported",
                    operation=f"Bind '{name}'",
                    context=str(getattr(self.library, "path", "")) or None,
                    symbol=name,
                )

            handle = CallHandle(
                name, signature, address, signature.prototype()(address), library=self.library
            )
            self._handles[name] = handle
            logger.debug("Bound %r", handle)
            return handle

    def get(self, name: str) -> Optional[CallHandle]:
        return self._handles.get(name)


def bind_catalog(binder: Binder, catalog: Mapping[str, CallSignature] = CATALOG) -> Mapping[str, CallHandle]:
    """
    Bind every catalog entry.

    Returns:
        Read-only mapping of operation name to CallHandle.

    Raises:
        SymbolNotFound: On the first entry the library does not export.
    """
    handles = {name: binder.bind(name, signature) for name, signature in catalog.items()}
    return MappingProxyType(handles)
