"""
Bit-exact port of the 48-bit linear congruential generator used by
java.util.Random. Capture and verification sides derive identical strand
positions from the same image id, so every draw here must match the
reference sequence exactly.
"""

from typing import Union

MULTIPLIER = 0x5DEECE66D
ADDEND = 0xB
MASK_48 = (1 << 48) - 1
MASK_32 = (1 << 32) - 1
# Draws are normalised by 2^31 - 1, not 2^31.
DRAW_DIVISOR = 0x7FFFFFFF


class JavaRandom:
    """48-bit LCG seeded like ``new java.util.Random(seed)``"""

    def __init__(self, seed: int):
        self.state = (int(seed) ^ MULTIPLIER) & MASK_48

    def next_bits(self, bits: int) -> int:
        """Advance the state and return its top ``bits`` bits (unsigned)"""
        if not 1 <= bits <= 32:
            raise ValueError(f"bits must be in [1, 32], got {bits}")
        self.state = (self.state * MULTIPLIER + ADDEND) & MASK_48
        return self.state >> (48 - bits)

    def next_int(self) -> int:
        """Java ``nextInt()``: a signed 32-bit value"""
        value = self.next_bits(32)
        return value - (1 << 32) if value & 0x80000000 else value

    def random(self) -> float:
        """Draw used by the strand planner: ``next(31) / (2^31 - 1)``"""
        return self.next_bits(31) / DRAW_DIVISOR

    __call__ = random


def java_string_hash(text: str) -> int:
    """Java ``String.hashCode()`` as a signed 32-bit int"""
    h = 0
    # hashCode iterates UTF-16 code units
    data = text.encode('utf-16-be')
    for i in range(0, len(data), 2):
        h = (31 * h + ((data[i] << 8) | data[i + 1])) & MASK_32
    return h - (1 << 32) if h & 0x80000000 else h


def seed_from_image_id(image_id: Union[int, str]) -> int:
    """
    Turn an image id into a generator seed.

    Integers and integer strings are used directly (the capture app seeds with
    its numeric id). Any other string falls back to its Java hash code.
    """
    if isinstance(image_id, bool) or image_id is None:
        raise ValueError(f"Unusable image id: {image_id!r}")
    if isinstance(image_id, int):
        return image_id
    text = str(image_id).strip()
    if not text:
        raise ValueError("Image id is empty")
    try:
        return int(text)
    except ValueError:
        return java_string_hash(text)
