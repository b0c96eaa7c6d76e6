"""Error codes and the exception raised for them."""

from __future__ import annotations

from enum import IntEnum


class ErrorCode(IntEnum):
    """Error codes reported by the library."""

    NO_ERROR = 0
    MEM_ALLOC_FAILED = 1
    MEM_COPY_FAILED = 2
    NCHANS_EXCEEDS_LIMIT = 3
    INVALID_PLAN = 4
    INVALID_POINTER = 5
    INVALID_STRIDE = 6
    NO_DM_LIST_SET = 7
    TOO_FEW_NSAMPS = 8
    INVALID_FLAG_COMBINATION = 9
    UNSUPPORTED_IN_NBITS = 10
    UNSUPPORTED_OUT_NBITS = 11
    INVALID_DEVICE_INDEX = 12
    DEVICE_ALREADY_SET = 13
    PRIOR_GPU_ERROR = 14
    INTERNAL_GPU_ERROR = 15
    UNKNOWN_ERROR = 16


_MESSAGES = {
    ErrorCode.NO_ERROR: "No error",
    ErrorCode.MEM_ALLOC_FAILED: "Memory allocation failed",
    ErrorCode.MEM_COPY_FAILED: "Memory copy failed",
    ErrorCode.INVALID_DEVICE_INDEX: "Invalid device index",
    ErrorCode.DEVICE_ALREADY_SET: "Device is already set and cannot be changed",
    ErrorCode.NCHANS_EXCEEDS_LIMIT: "No. channels exceeds internal limit",
    ErrorCode.INVALID_PLAN: "Invalid plan",
    ErrorCode.INVALID_POINTER: "Invalid pointer",
    ErrorCode.INVALID_STRIDE: "Invalid stride",
    ErrorCode.NO_DM_LIST_SET: "No DM list has been set",
    ErrorCode.TOO_FEW_NSAMPS: "No. samples < maximum delay",
    ErrorCode.INVALID_FLAG_COMBINATION: "Invalid flag combination",
    ErrorCode.UNSUPPORTED_IN_NBITS: "Unsupported in_nbits value",
    ErrorCode.UNSUPPORTED_OUT_NBITS: "Unsupported out_nbits value",
    ErrorCode.PRIOR_GPU_ERROR: "Prior GPU error.",
    ErrorCode.INTERNAL_GPU_ERROR: "Internal GPU error. Please contact the author(s).",
    ErrorCode.UNKNOWN_ERROR: "Unknown error. Please contact the author(s).",
}


def error_string(code: int) -> str:
    """Return a human-readable description of an error code."""
    try:
        return _MESSAGES[ErrorCode(code)]
    except ValueError:
        return "Invalid error code"


class DedispError(RuntimeError):
    """Raised when an operation fails with one of the library's error codes."""

    def __init__(self, code: int) -> None:
        try:
            self.code: int = ErrorCode(code)
        except ValueError:
            self.code = code
        super().__init__(f"An error occurred within dedisp: {error_string(code)}")


def check_error(code: int) -> None:
    """Raise :class:`DedispError` unless ``code`` means success."""
    if code != ErrorCode.NO_ERROR:
        raise DedispError(code)