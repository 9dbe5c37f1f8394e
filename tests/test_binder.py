"""Tests for call signatures, the catalog, and symbol binding."""
import ctypes
import ctypes.util

import pytest

from imgal.binder import (
    ARRAY,
    CATALOG,
    SCALAR,
    Binder,
    CallHandle,
    CallSignature,
    bind_catalog,
)
from imgal.errors import SignatureMismatch, SymbolNotFound
from imgal.lib import LibraryLoader
from imgal.marshaller import invoke
from fixtures import FakeOpener, make_loader, without

LIBM = ctypes.util.find_library("m")


def _library(exports=None):
    opener = FakeOpener(exports)
    return make_loader(opener).load(), opener


def test_catalog_operations():
    assert set(CATALOG) == {
        "sum",
        "omega",
        "abbe_diffraction_limit",
        "midpoint",
        "simpson",
        "composite_simpson",
        "real",
        "imaginary",
    }
    for signature in CATALOG.values():
        assert signature.restype is ctypes.c_double


def test_catalog_is_read_only():
    with pytest.raises(TypeError):
        CATALOG["extra"] = CallSignature.of(("x", SCALAR))


def test_array_expands_to_pointer_and_length():
    argtypes = CATALOG["midpoint"].native_argtypes()
    assert argtypes == [ctypes.POINTER(ctypes.c_double), ctypes.c_size_t, ctypes.c_double]


def test_phasor_signature_order():
    signature = CATALOG["real"]
    assert [p.name for p in signature.params] == ["y", "period", "harmonic", "omega"]
    assert [p.kind for p in signature.params] == [ARRAY, SCALAR, SCALAR, SCALAR]
    assert signature.arity == 4
    assert signature.array_count == 1
    assert signature.describe() == "(y: array, period: scalar, harmonic: scalar, omega: scalar)"


def test_signatures_compare_by_value():
    assert CallSignature.of(("input", ARRAY)) == CATALOG["sum"]
    assert CallSignature.of(("input", ARRAY)) != CallSignature.of(("input", SCALAR))


def test_bind_resolves_symbol():
    library, _ = _library()
    handle = Binder(library).bind("sum", CATALOG["sum"])
    assert isinstance(handle, CallHandle)
    assert handle.name == "sum"
    assert handle.signature is CATALOG["sum"]
    assert handle.address == library.lookup("sum")


def test_bind_is_idempotent():
    library, opener = _library()
    binder = Binder(library)
    first = binder.bind("omega", CATALOG["omega"])
    second = binder.bind("omega", CATALOG["omega"])
    assert first is second
    assert opener.cdll.lookups["omega"] == 1
    assert binder.get("omega") is first


def test_rebinding_with_other_signature_fails():
    library, _ = _library()
    binder = Binder(library)
    binder.bind("omega", CATALOG["omega"])
    with pytest.raises(SignatureMismatch):
        binder.bind("omega", CallSignature.of(("period", ARRAY)))


def test_missing_symbol():
    library, _ = _library(without("imaginary"))
    with pytest.raises(SymbolNotFound) as exc_info:
        Binder(library).bind("imaginary", CATALOG["imaginary"])
    assert exc_info.value.context["symbol"] == "imaginary"
    assert "'imaginary' is not exported" in str(exc_info.value)


def test_bind_catalog_binds_everything():
    library, opener = _library()
    handles = bind_catalog(Binder(library))
    assert set(handles) == set(CATALOG)
    assert all(opener.cdll.lookups[name] == 1 for name in CATALOG)
    with pytest.raises(TypeError):
        handles["sum"] = None


def test_bind_catalog_stops_at_missing_symbol():
    library, _ = _library(without("composite_simpson"))
    with pytest.raises(SymbolNotFound):
        bind_catalog(Binder(library))


@pytest.mark.skipif(LIBM is None, reason="C math library not found")
def test_bind_and_call_real_library():
    """Bind a symbol from the C math library and call it through the bridge."""
    library = LibraryLoader(locate=lambda name: LIBM).load()
    binder = Binder(library)
    cos = binder.bind("cos", CallSignature.of(("x", SCALAR)))
    assert invoke(cos, [0.0]) == 1.0
    assert invoke(cos, [3.141592653589793]) == pytest.approx(-1.0)

    with pytest.raises(SymbolNotFound):
        binder.bind("imgal_definitely_not_exported", CallSignature.of(("x", SCALAR)))
