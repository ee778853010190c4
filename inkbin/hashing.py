"""Name hashing shared by the compiler and the runtime."""

_A = 54059
_B = 76963
_FIRST = 37
_MASK = 0xFFFFFFFF


def hash_string(text: str | bytes) -> int:
    """Return the 32-bit hash of ``text``, as stored in compiled stories.

    Strings are hashed over their UTF-8 bytes; each byte is treated as a
    signed character.
    """
    data = text.encode("utf-8") if isinstance(text, str) else bytes(text)
    value = _FIRST
    for byte in data:
        signed = byte - 256 if byte >= 128 else byte
        value = ((value * _A) ^ (signed * _B)) & _MASK
    return value