"""Bit buffer helpers. All buffers are packed most-significant bit first."""

from typing import Union

import numpy as np

Buffer = Union[bytes, bytearray, memoryview, np.ndarray]


def as_byte_array(buffer: Buffer) -> np.ndarray:
    """View a buffer (or a batch of buffers) as a uint8 array."""
    if isinstance(buffer, np.ndarray):
        return buffer.astype(np.uint8, copy=False)
    return np.frombuffer(bytes(buffer), dtype=np.uint8)


def unpack_bits(buffer: Buffer, n_bits: int) -> np.ndarray:
    """First n_bits bits of each buffer as 0.0/1.0 floats, MSB first."""
    bits = np.unpackbits(as_byte_array(buffer), axis=-1)
    return bits[..., :n_bits].astype(np.float64)


def pack_bits(bits: np.ndarray) -> np.ndarray:
    """
    Pack booleans MSB first, 8 per byte.

    A trailing partial byte is kept and padded with zero bits, so k bits
    always become ceil(k / 8) bytes.
    """
    return np.packbits(np.asarray(bits, dtype=bool), axis=-1)
