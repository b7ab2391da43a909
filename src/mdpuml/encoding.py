"""PlantUML text encoding for render URLs.

PlantUML servers accept diagram source in the URL path as raw deflate
output re-encoded with a custom base64 alphabet.

Reference: https://plantuml.com/text-encoding
"""

from __future__ import annotations

import zlib

__all__ = ["PLANTUML_ALPHABET", "encode_plantuml"]

# PlantUML's custom base64 alphabet
PLANTUML_ALPHABET = "0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz-_"


def _append_3bytes(result: list[str], b1: int, b2: int, b3: int) -> None:
    result.append(PLANTUML_ALPHABET[b1 >> 2])
    result.append(PLANTUML_ALPHABET[((b1 & 0x3) << 4) | (b2 >> 4)])
    result.append(PLANTUML_ALPHABET[((b2 & 0xF) << 2) | (b3 >> 6)])
    result.append(PLANTUML_ALPHABET[b3 & 0x3F])


def encode_plantuml(source: str) -> str:
    """Encode diagram source using PlantUML-specific encoding.

    Args:
        source: The PlantUML diagram source.

    Returns:
        PlantUML-encoded string for use in ``{server}/{format}/{encoded}`` URLs.
    """
    # Strip the 2-byte zlib header and 4-byte adler32 trailer to get raw deflate
    compressed = zlib.compress(source.encode("utf-8"), level=9)[2:-4]
    result: list[str] = []

    for i in range(0, len(compressed), 3):
        chunk = compressed[i : i + 3]
        if len(chunk) == 3:
            _append_3bytes(result, chunk[0], chunk[1], chunk[2])
        elif len(chunk) == 2:
            _append_3bytes(result, chunk[0], chunk[1], 0)
        else:
            _append_3bytes(result, chunk[0], 0, 0)

    return "".join(result)
