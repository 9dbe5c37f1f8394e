"""
Library discovery and loading utilities for the imgal bindings.
"""

import atexit
import ctypes
import logging
import os
import sys
import tempfile
import threading
from importlib import resources
from pathlib import Path
from typing import Callable, Optional, Tuple, Union

from .errors import ImgalError, IOFailure, LoadFailure, ResourceMissing

logger = logging.getLogger(__name__)

LIBRARY_NAME = "imgal"

# Directory inside the package holding the bundled native library
RESOURCE_DIR = "native"

PathLike = Union[str, Path]


def get_library_name(name: str = LIBRARY_NAME) -> str:
    """Return the platform-specific shared library filename."""
    if sys.platform == "darwin":
        return f"lib{name}.dylib"
    elif sys.platform == "win32":
        return f"{name}.dll"
    else:
        return f"lib{name}.so"


def _find_library(name: str) -> Optional[Tuple[object, bool]]:
    """Return (location, bundled) for the first library found, or None."""
    lib_name = get_library_name(name)

    # Check environment variable
    env_path = os.environ.get("IMGAL_LIB_PATH")
    if env_path:
        path = Path(env_path)
        if path.is_file():
            return path, False
        elif path.is_dir():
            lib_path = path / lib_name
            if lib_path.exists():
                return lib_path, False

    # Check the packaged resource
    payload = resources.files(__package__) / RESOURCE_DIR / lib_name
    if payload.is_file():
        return payload, True

    # Check common build locations (for development)
    workspace_root = Path(__file__).parent.parent
    for build_type in ["release", "debug"]:
        dev_lib = workspace_root / "target" / build_type / lib_name
        if dev_lib.exists():
            return dev_lib, False

    return None


def get_library_path(name: str = LIBRARY_NAME):
    """
    Find the imgal shared library.

    Searches in order:
    1. IMGAL_LIB_PATH environment variable
    2. The library bundled inside this package
    3. Relative to workspace root (for development)

    Returns:
        A filesystem Path, or an importlib.resources Traversable for the
        bundled payload, or None if not found.
    """
    found = _find_library(name)
    return found[0] if found is not None else None


def _remove_extracted(path: Path) -> None:
    try:
        path.unlink()
    except FileNotFoundError:
        pass
    except OSError as exc:
        logger.debug("Could not remove extracted library %s: %s", path, exc)


def extract_library(payload, name: str = LIBRARY_NAME) -> Path:
    """
    Copy a packaged library payload to a unique temporary file.

    The file is created with a fresh name so that no existing file is ever
    overwritten, and is scheduled for removal when the interpreter exits.

    Args:
        payload: importlib.resources Traversable holding the library bytes.
        name: Logical library name, used for the temporary file prefix.

    Returns:
        Path of the extracted library.

    Raises:
        ResourceMissing: If the payload does not exist.
        IOFailure: If the payload cannot be read or written.
    """
    try:
        data = payload.read_bytes()
    except FileNotFoundError as exc:
        raise ResourceMissing.create(str(exc), context=str(payload)) from exc
    except OSError as exc:
        raise IOFailure.create(str(exc), context=str(payload)) from exc

    suffix = Path(get_library_name(name)).suffix
    try:
        fd, tmp_name = tempfile.mkstemp(prefix=f"lib{name}", suffix=suffix)
    except OSError as exc:
        raise IOFailure.create(str(exc), context=tempfile.gettempdir()) from exc

    tmp_path = Path(tmp_name)
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
    except OSError as exc:
        _remove_extracted(tmp_path)
        raise IOFailure.create(str(exc), context=tmp_name) from exc

    atexit.register(_remove_extracted, tmp_path)
    logger.debug("Extracted %d bytes of %s to %s", len(data), payload.name, tmp_path)
    return tmp_path


def locate_library(name: str = LIBRARY_NAME) -> Path:
    """
    Produce a readable filesystem path for the native library.

    Libraries from IMGAL_LIB_PATH or a development build are used in place;
    the bundled payload is always extracted to a temporary file first, even
    when the package is installed as plain files.

    Raises:
        ResourceMissing: If no library can be found.
        IOFailure: If the bundled payload cannot be extracted.
    """
    found = _find_library(name)
    if found is None:
        raise ResourceMissing.create(
            f"No {get_library_name(name)} bundled, in IMGAL_LIB_PATH or in target/",
            context=name,
        )
    location, bundled = found
    if bundled:
        return extract_library(location, name)
    return location


class LibraryHandle:
    """
    A loaded native library.

    Symbols stay valid for the life of the process; the library is never
    unloaded.
    """

    def __init__(self, path: PathLike, cdll: ctypes.CDLL):
        self.path = path
        self._cdll = cdll

    def lookup(self, symbol: str) -> Optional[int]:
        """Return the address of an exported symbol, or None if absent."""
        try:
            fn = self._cdll[symbol]
        except AttributeError:
            return None
        return ctypes.cast(fn, ctypes.c_void_p).value

    def __repr__(self) -> str:
        return f"LibraryHandle(path={str(self.path)!r})"


class LibraryLoader:
    """
    Loads the native library exactly once.

    Concurrent first callers block until one of them finishes loading, then
    all receive the same LibraryHandle, or the same LoadFailure. A failure is
    cached and re-raised by every later call; loading is never retried.

    Args:
        name: Logical library name.
        locate: Callable returning the library path (defaults to
            locate_library).
        open_library: Callable opening a path as a native library (defaults
            to ctypes.CDLL).
    """

    def __init__(
        self,
        name: str = LIBRARY_NAME,
        locate: Optional[Callable[[str], PathLike]] = None,
        open_library: Optional[Callable[[str], ctypes.CDLL]] = None,
    ):
        self.name = name
        self._locate = locate or locate_library
        self._open = open_library or ctypes.CDLL
        self._lock = threading.Lock()
        self._handle: Optional[LibraryHandle] = None
        self._failure: Optional[BaseException] = None

    @property
    def loaded(self) -> bool:
        return self._handle is not None

    def load(self) -> LibraryHandle:
        """
        Return the process-wide LibraryHandle, loading it on first use.

        Raises:
            ResourceMissing: If the library cannot be found.
            IOFailure: If the library cannot be extracted.
            LoadFailure: If the dynamic loader rejects the library, or
                locating it fails unexpectedly.
        """
        handle = self._handle
        if handle is not None:
            return handle

        with self._lock:
            if self._failure is not None:
                raise self._failure.with_traceback(None)
            if self._handle is None:
                try:
                    self._handle = self._load()
                except ImgalError as exc:
                    self._failure = exc
                    raise
                except Exception as exc:
                    self._failure = LoadFailure.create(
                        f"{type(exc).__name__}: {exc}", operation="Load native library"
                    )
                    raise self._failure from exc
            return self._handle

    def _load(self) -> LibraryHandle:
        path = self._locate(self.name)
        try:
            cdll = self._open(str(path))
        except OSError as exc:
            # Covers missing files as well as libraries built for another
            # architecture ("wrong ELF class", "mach-o, but wrong architecture").
            raise LoadFailure.create(str(exc), context=str(path)) from exc
        logger.debug("Loaded native library %s", path)
        return LibraryHandle(path, cdll)


# Process-wide loader instance
_loader = LibraryLoader()


def get_loader() -> LibraryLoader:
    """Return the process-wide LibraryLoader."""
    return _loader


def load_library() -> LibraryHandle:
    """
    Load the imgal shared library.

    Returns:
        The process-wide LibraryHandle.

    Raises:
        ResourceMissing, IOFailure, LoadFailure: On the first failed attempt
            and, cached, on every attempt after it.
    """
    return _loader.load()
