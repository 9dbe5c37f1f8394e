"""
Process-wide bridge to the imgal native library.

The bridge moves through ``UNLOADED -> LOADING -> BOUND -> READY`` exactly
once. Any error during loading or binding moves it to ``FAILED`` instead,
and the error is re-raised by every later call without another attempt.
Once ``READY`` the loaded library and the bound catalog are read-only, so
calls take no lock.
"""

import enum
import logging
import threading
from typing import Any, Callable, Mapping, Optional

from .arena import ScopedArena
from .binder import CATALOG, Binder, CallHandle, CallSignature, bind_catalog
from .errors import ImgalError, LoadFailure, SignatureMismatch
from .lib import LibraryLoader, get_loader
from .marshaller import invoke

logger = logging.getLogger(__name__)


class BridgeState(enum.Enum):
    UNLOADED = "unloaded"
    LOADING = "loading"
    BOUND = "bound"
    READY = "ready"
    FAILED = "failed"


class Bridge:
    """
    Loads the native library, binds the operation catalog, and invokes
    operations by name.

    Args:
        loader: LibraryLoader to obtain the library from (defaults to the
            process-wide loader).
        catalog: Operation name to CallSignature mapping to bind eagerly.
        arena_factory: Arena constructor passed through to ``invoke``.
    """

    def __init__(
        self,
        loader: Optional[LibraryLoader] = None,
        catalog: Mapping[str, CallSignature] = CATALOG,
        arena_factory: Callable[[int], ScopedArena] = ScopedArena,
    ):
        self.loader = loader if loader is not None else get_loader()
        self.catalog = catalog
        self.arena_factory = arena_factory
        self._lock = threading.Lock()
        self._state = BridgeState.UNLOADED
        self._handles: Optional[Mapping[str, CallHandle]] = None
        self._failure: Optional[ImgalError] = None

    @property
    def state(self) -> BridgeState:
        return self._state

    @property
    def failure(self) -> Optional[ImgalError]:
        """The error that moved the bridge to FAILED, if any."""
        return self._failure

    def _transition(self, state: BridgeState) -> None:
        logger.debug("Bridge %s -> %s", self._state.value, state.value)
        self._state = state

    def initialize(self) -> Mapping[str, CallHandle]:
        """
        Load the library and bind the catalog, once.

        Returns:
            Read-only mapping of operation name to CallHandle.

        Raises:
            ImgalError: The initialization failure, on the failing call and
                on every call after it.
        """
        handles = self._handles
        if handles is not None:
            return handles

        with self._lock:
            if self._state is BridgeState.FAILED:
                raise self._failure.with_traceback(None)
            if self._state is BridgeState.READY:
                return self._handles

            self._transition(BridgeState.LOADING)
            try:
                library = self.loader.load()
                handles = bind_catalog(Binder(library), self.catalog)
                self._transition(BridgeState.BOUND)
            except ImgalError as exc:
                self._fail(exc)
                raise
            except Exception as exc:
                failure = LoadFailure.create(f"{type(exc).__name__}: {exc}", operation="Initialize bridge")
                self._fail(failure)
                raise failure from exc

            self._handles = handles
            self._transition(BridgeState.READY)
            logger.debug("Bridge ready with %d operations from %s", len(handles), library.path)
            return handles

    def _fail(self, exc: ImgalError) -> None:
        self._failure = exc
        self._transition(BridgeState.FAILED)
        logger.error("imgal native bridge initialization failed: %s", exc)

    def handle(self, name: str) -> CallHandle:
        """
        Return the bound CallHandle for an operation.

        Raises:
            SignatureMismatch: If ``name`` is not in the catalog.
            ImgalError: The cached initialization failure.
        """
        handles = self.initialize()
        try:
            return handles[name]
        except KeyError:
            raise SignatureMismatch.create(
                f"unknown operation '{name}'", operation=f"Look up '{name}'"
            ) from None

    def call(self, name: str, *args: Any) -> float:
        """
        Invoke a catalog operation.

        Args:
            name: Operation name.
            *args: Logical arguments in signature order.

        Returns:
            The scalar result.
        """
        return invoke(self.handle(name), args, self.arena_factory)


_bridge: Optional[Bridge] = None
_bridge_lock = threading.Lock()


def get_bridge() -> Bridge:
    """Return the process-wide Bridge."""
    global _bridge
    bridge = _bridge
    if bridge is None:
        with _bridge_lock:
            if _bridge is None:
                _bridge = Bridge()
            bridge = _bridge
    return bridge
