"""
Error codes, message formatting and exceptions for the imgal bindings.

All error messages follow the standard format:

    [Component] Operation failed: {reason}. Expected: {expected}.
"""

from typing import Any, Dict, Optional


# Error code constants
IMGAL_OK = 0
IMGAL_ERR_RESOURCE = -1
IMGAL_ERR_IO = -2
IMGAL_ERR_LOAD = -3
IMGAL_ERR_SYMBOL = -4
IMGAL_ERR_SIGNATURE = -5
IMGAL_ERR_CALL = -6


# Error code to component mapping
_ERROR_COMPONENTS: Dict[int, str] = {
    IMGAL_ERR_RESOURCE: "Resource",
    IMGAL_ERR_IO: "Resource",
    IMGAL_ERR_LOAD: "Loader",
    IMGAL_ERR_SYMBOL: "Binder",
    IMGAL_ERR_SIGNATURE: "Marshaller",
    IMGAL_ERR_CALL: "FFI",
}


# Error code to expected behavior mapping
_ERROR_EXPECTATIONS: Dict[int, str] = {
    IMGAL_ERR_RESOURCE: "A bundled native library or IMGAL_LIB_PATH pointing at one",
    IMGAL_ERR_IO: "A writable temporary directory with free space",
    IMGAL_ERR_LOAD: "A native library built for this platform and architecture",
    IMGAL_ERR_SYMBOL: "A native library exporting every catalog operation",
    IMGAL_ERR_SIGNATURE: "Arguments matching the operation signature",
    IMGAL_ERR_CALL: "A native call that returns normally",
}


def format_error(component: str, operation: str, reason: str, expected: str) -> str:
    """
    Format an error message according to the imgal standard format.

    Args:
        component: The component that failed (Loader, Binder, etc.)
        operation: The operation that failed
        reason: Detailed explanation of what went wrong
        expected: What was expected or how to fix the issue

    Returns:
        Formatted error message.

    Example:
        >>> format_error("Binder", "Bind 'sum'", "Symbol not exported", "A newer library")
        "[Binder] Bind 'sum' failed: Symbol not exported. Expected: A newer library."
    """
    return f"[{component}] {operation} failed: {reason}. Expected: {expected}."


def get_component_for_error_code(code: int) -> str:
    """Get the component name for an error code."""
    return _ERROR_COMPONENTS.get(code, "imgal")


def get_expectation_for_error_code(code: int) -> str:
    """Get the expected behavior for an error code."""
    return _ERROR_EXPECTATIONS.get(code, "Valid input and proper usage")


def format_standardized_error(
    code: int,
    detail: str,
    operation: Optional[str] = None,
    context: Optional[str] = None
) -> str:
    """
    Format a standardized error message from an error code and detail.

    The component and expected behavior are derived from the error code.

    Args:
        code: imgal error code (e.g., IMGAL_ERR_SYMBOL)
        detail: What went wrong
        operation: Optional operation description (auto-generated if not provided)
        context: Optional context information

    Returns:
        Formatted error message following the imgal standard.

    Example:
        >>> format_standardized_error(
        ...     IMGAL_ERR_LOAD,
        ...     "wrong ELF class: ELFCLASS32",
        ...     context="/tmp/libimgal1234.so"
        ... )
        "[Loader] Load native library (/tmp/libimgal1234.so) failed: wrong ELF class: ELFCLASS32. Expected: A native library built for this platform and architecture."
    """
    component = get_component_for_error_code(code)
    expected = get_expectation_for_error_code(code)

    if operation is None:
        operation = _get_default_operation(code)

    if context:
        operation = f"{operation} ({context})"

    return format_error(component, operation, detail, expected)


def _get_default_operation(code: int) -> str:
    """Get default operation name for an error code."""
    operations = {
        IMGAL_ERR_RESOURCE: "Locate native library",
        IMGAL_ERR_IO: "Extract native library",
        IMGAL_ERR_LOAD: "Load native library",
        IMGAL_ERR_SYMBOL: "Bind native symbol",
        IMGAL_ERR_SIGNATURE: "Check call arguments",
        IMGAL_ERR_CALL: "Invoke native function",
    }
    return operations.get(code, "imgal operation")


class ImgalError(Exception):
    """
    Base exception for all imgal bridge errors.

    Attributes:
        message: Formatted error message
        code: imgal error code (e.g., IMGAL_ERR_LOAD)
        context: Additional context dictionary
    """

    code = IMGAL_OK

    def __init__(self, message: str, code: Optional[int] = None,
                 context: Optional[Dict[str, Any]] = None):
        self.message = message
        if code is not None:
            self.code = code
        self.context = context or {}
        super().__init__(message)

    @classmethod
    def create(cls, detail: str, operation: Optional[str] = None,
               context: Optional[str] = None, **extra: Any) -> "ImgalError":
        """
        Create an error of this class using the standard message format.

        Args:
            detail: What went wrong
            operation: Operation that failed (defaults per error code)
            context: Optional context appended to the operation
            **extra: Additional entries for the context dictionary

        Returns:
            Exception instance with a standardized message.
        """
        message = format_standardized_error(cls.code, detail, operation, context)
        info: Dict[str, Any] = {"operation": operation, "context": context, "detail": detail}
        info.update(extra)
        return cls(message, context=info)


class ResourceMissing(ImgalError):
    """The native library payload could not be found."""

    code = IMGAL_ERR_RESOURCE


class IOFailure(ImgalError):
    """The native library payload could not be written to disk."""

    code = IMGAL_ERR_IO


class LoadFailure(ImgalError):
    """The operating system refused to load the native library."""

    code = IMGAL_ERR_LOAD


class SymbolNotFound(ImgalError):
    """A catalog operation is not exported by the loaded library."""

    code = IMGAL_ERR_SYMBOL


class SignatureMismatch(ImgalError):
    """Arguments do not match the operation's calling contract."""

    code = IMGAL_ERR_SIGNATURE


class NativeCallFailure(ImgalError):
    """A native invocation faulted or was rejected by ctypes."""

    code = IMGAL_ERR_CALL
