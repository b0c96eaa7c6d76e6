"""Buffer copies, host memory queries and array layout helpers."""

from __future__ import annotations

import os

import numpy as np


def copy_2d(dst, dst_stride: int, src, src_stride: int, width: int, height: int):
    """Copy ``height`` rows of ``width`` elements between strided flat buffers.

    ``dst`` is modified in place and returned.
    """
    if height <= 0 or width <= 0:
        return dst
    if (height - 1) * src_stride + width > len(src):
        raise ValueError("source buffer too small for the requested copy")
    if (height - 1) * dst_stride + width > len(dst):
        raise ValueError("destination buffer too small for the requested copy")
    for row in range(height):
        d = row * dst_stride
        s = row * src_stride
        dst[d:d + width] = src[s:s + width]
    return dst


def get_total_memory() -> int:
    """Total host memory in MiB."""
    pages = os.sysconf("SC_PHYS_PAGES")
    page_size = os.sysconf("SC_PAGE_SIZE")
    return pages * page_size // (1024 * 1024)


def get_used_memory() -> int:
    """Peak resident memory of this process in MiB."""
    import resource

    usage = resource.getrusage(resource.RUSAGE_SELF)
    return usage.ru_maxrss // 1024


def get_free_memory() -> int:
    """Total host memory minus the memory used by this process, in MiB."""
    return get_total_memory() - get_used_memory()


def round_up(a: int, b: int) -> int:
    """Round ``a`` up to a multiple of ``b``."""
    return ((a + b - 1) // b) * b


def _as_array(data) -> np.ndarray:
    if isinstance(data, (bytes, bytearray, memoryview)):
        return np.frombuffer(data, dtype=np.uint8)
    return np.asarray(data).ravel()


def transpose_data(data, height: int, width: int, in_stride: int, out_stride: int,
                   offset: float, scale: float) -> np.ndarray:
    """Transpose a sample-major buffer into a channel-major float32 buffer.

    Element ``y`` of input row ``x`` becomes element ``x`` of output row ``y``,
    with ``offset`` subtracted and the result divided by ``scale``. The result
    is a flat array of ``height * out_stride`` values; padding is zero.
    """
    if out_stride < width:
        raise ValueError("out_stride must be at least width")
    src = _as_array(data)
    out = np.zeros((height, out_stride), dtype=np.float32)
    if height == 0 or width == 0:
        return out.ravel()
    if (width - 1) * in_stride + height > src.size:
        raise ValueError("input buffer too small")
    index = np.arange(width)[None, :] * in_stride + np.arange(height)[:, None]
    values = src[index].astype(np.float32)
    out[:, :width] = (values - np.float32(offset)) / np.float32(scale)
    return out.ravel()


def copy_data(data, height: int, width: int, in_stride: int, out_stride: int) -> np.ndarray:
    """Copy ``height`` rows of ``width`` values into a buffer with ``out_stride``.

    The result is a flat array of ``height * out_stride`` values; padding is zero.
    """
    if out_stride < width:
        raise ValueError("out_stride must be at least width")
    src = _as_array(data)
    out = np.zeros((height, out_stride), dtype=src.dtype)
    if height == 0 or width == 0:
        return out.ravel()
    if (height - 1) * in_stride + width > src.size:
        raise ValueError("input buffer too small")
    index = np.arange(height)[:, None] * in_stride + np.arange(width)[None, :]
    out[:, :width] = src[index]
    return out.ravel()