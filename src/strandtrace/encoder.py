"""
Fingerprint encoder.

Each RGB triple becomes six uppercase hex characters; a strand's triples are
concatenated without separators and hashed with SHA-256. The hex string is
always uppercase but digests are compared case-insensitively.
"""

import hashlib
from typing import Dict, Mapping, Optional

import numpy as np

EDGE_ORDER = ('top', 'bottom', 'left', 'right')


def rgb_to_hex(r: int, g: int, b: int, prefix: str = '') -> str:
    """Encode one pixel, e.g. (255, 8, 0) -> 'FF0800'"""
    for channel in (r, g, b):
        if not 0 <= int(channel) <= 255:
            raise ValueError(f"Channel value out of range: {channel}")
    return f"{prefix}{int(r):02X}{int(g):02X}{int(b):02X}"


def encode_pixels(pixels) -> str:
    """Hex string for an ordered (N, 3) sequence of RGB triples"""
    arr = np.asarray(pixels)
    if arr.size == 0:
        return ''
    if arr.ndim != 2 or arr.shape[1] != 3:
        raise ValueError(f"Expected (N, 3) RGB triples, got shape {arr.shape}")
    if arr.dtype != np.uint8:
        if arr.min() < 0 or arr.max() > 255:
            raise ValueError("Pixel channel values must be in [0, 255]")
        arr = arr.astype(np.uint8)
    return arr.tobytes().hex().upper()


def decode_hex(text: str) -> np.ndarray:
    """Inverse of encode_pixels; a leading '#' per pixel is not accepted here"""
    if len(text) % 6:
        raise ValueError(f"Hex pixel string length must be a multiple of 6, got {len(text)}")
    return np.frombuffer(bytes.fromhex(text), dtype=np.uint8).reshape(-1, 3)


def digest_text(text: str) -> str:
    return hashlib.sha256(text.encode('utf-8')).hexdigest()


def digest(pixels) -> str:
    """SHA-256 hex digest of the encoded pixel string"""
    return digest_text(encode_pixels(pixels))


def digests_equal(a: Optional[str], b: Optional[str]) -> bool:
    if a is None or b is None:
        return False
    return a.strip().lower() == b.strip().lower()


def edge_digests(edge_pixels: Mapping[str, np.ndarray]) -> Dict[str, str]:
    """One digest per border side plus a combined digest over top+bottom+left+right"""
    encoded = {side: encode_pixels(edge_pixels[side]) for side in EDGE_ORDER}
    result = {side: digest_text(encoded[side]) for side in EDGE_ORDER}
    result['combined'] = digest_text(''.join(encoded[side] for side in EDGE_ORDER))
    return result
