"""
Argument checking and invocation of bound native functions.
"""

import ctypes
import numbers
from typing import Any, Callable, List, Optional, Sequence, Union

from .arena import ScopedArena
from .binder import ArgKind, CallHandle, CallSignature
from .errors import NativeCallFailure, SignatureMismatch

ArrayArg = Union[List[float], memoryview]


def _as_double_buffer(value: Any):
    """Return a 1-D contiguous memoryview of C doubles, or None."""
    try:
        view = memoryview(value)
    except TypeError:
        return None
    if view.format == "d" and view.ndim == 1 and view.c_contiguous:
        return view
    view.release()
    return None


def _to_double(value: Any) -> Optional[float]:
    """Return ``value`` as a float, or None if it is not a real number."""
    if not isinstance(value, numbers.Real) or isinstance(value, bool):
        return None
    try:
        return float(value)
    except OverflowError:
        return None


def _mismatch(position: int, name: str, value: Any, wanted: str, element: Optional[int] = None):
    where = f"argument {position} ('{name}')"
    if element is not None:
        where = f"element {element} of {where}"
    return SignatureMismatch.create(
        f"{where} is {type(value).__name__}, not {wanted}",
        operation=f"Check argument '{name}'",
    )


def _check_array(name: str, position: int, value: Any) -> ArrayArg:
    if isinstance(value, (str, bytes, bytearray)):
        raise _mismatch(position, name, value, "an array of numbers")

    view = _as_double_buffer(value)
    if view is not None:
        return view

    try:
        items = list(value)
    except TypeError:
        raise _mismatch(position, name, value, "an array of numbers") from None

    doubles = []
    for index, item in enumerate(items):
        number = _to_double(item)
        if number is None:
            raise _mismatch(position, name, item, "a number", element=index)
        doubles.append(number)
    return doubles


def _release(checked: List[Any]) -> None:
    for value in checked:
        if isinstance(value, memoryview):
            value.release()


def check_arguments(signature: CallSignature, args: Sequence[Any]) -> List[Any]:
    """
    Validate ``args`` against ``signature``.

    Returns:
        The arguments normalized for marshalling: floats for scalars, lists
        of floats or double buffers for arrays. Buffer views are released
        by ``invoke``; other callers release them themselves.

    Raises:
        SignatureMismatch: On wrong arity or a wrong argument kind.
    """
    if len(args) != signature.arity:
        raise SignatureMismatch.create(
            f"expected {signature.arity} arguments {signature.describe()}, got {len(args)}"
        )

    checked: List[Any] = []
    try:
        for position, (param, value) in enumerate(zip(signature.params, args)):
            if param.kind is ArgKind.ARRAY:
                checked.append(_check_array(param.name, position, value))
                continue
            number = _to_double(value)
            if number is None:
                raise _mismatch(position, param.name, value, "a number")
            checked.append(number)
    except BaseException:
        _release(checked)
        raise
    return checked


def invoke(
    handle: CallHandle,
    args: Sequence[Any],
    arena_factory: Callable[[int], ScopedArena] = ScopedArena,
) -> float:
    """
    Call a bound native function.

    Array arguments are copied into a ScopedArena that lives exactly as long
    as the call and is released on every exit path. No retries are made.

    Args:
        handle: The bound operation.
        args: Logical arguments in signature order.
        arena_factory: Callable creating the arena from an element count.

    Returns:
        The native function's scalar result.

    Raises:
        SignatureMismatch: If ``args`` does not fit the signature. No native
            memory has been allocated at that point.
        NativeCallFailure: If the native call faults or ctypes rejects it.
    """
    signature = handle.signature
    checked = check_arguments(signature, args)
    capacity = 0
    for param, value in zip(signature.params, checked):
        if param.kind is ArgKind.ARRAY:
            capacity += len(value)

    try:
        with arena_factory(capacity) as arena:
            native_args: List[Any] = []
            for param, value in zip(signature.params, checked):
                if param.kind is ArgKind.ARRAY:
                    native_args.extend(arena.allocate(value))
                else:
                    native_args.append(value)

            try:
                result = handle.function(*native_args)
            except (OSError, ctypes.ArgumentError) as exc:
                raise NativeCallFailure.create(
                    str(exc),
                    operation=f"Call to '{handle.name}'",
                    symbol=handle.name,
                ) from exc
    finally:
        _release(checked)

    return float(result)
