#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
PNG text chunk extraction.

Generation tools (ComfyUI, A1111, ChatGPT) store their settings as PNG text
chunks. This module walks the chunk list of a raw buffer and returns the
keyword -> text mapping. It never raises on malformed input: a buffer that is
not a PNG yields an empty mapping, and a truncated or corrupt chunk just ends
or skips the walk.
"""

import logging
import struct
import zlib
from typing import Dict, Optional, Tuple

logger = logging.getLogger(__name__)

PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"
TEXT_CHUNK_TYPES = (b"tEXt", b"zTXt", b"iTXt")

_HEADER = struct.Struct(">I4s")


def is_png(data: bytes) -> bool:
    return data[:8] == PNG_SIGNATURE


def _decode(raw: bytes, encoding: str = "utf-8") -> str:
    return raw.decode(encoding, errors="replace")


def _parse_text(payload: bytes) -> Optional[Tuple[str, str]]:
    keyword, sep, text = payload.partition(b"\x00")
    if not sep:
        return None
    return _decode(keyword), _decode(text)


def _parse_ztxt(payload: bytes) -> Optional[Tuple[str, str]]:
    keyword, sep, rest = payload.partition(b"\x00")
    if not sep or not rest:
        return None
    # rest[0] is the compression method; 0 (deflate) is the only one defined
    if rest[0] != 0:
        return None
    return _decode(keyword), _decode(zlib.decompress(rest[1:]))


def _parse_itxt(payload: bytes) -> Optional[Tuple[str, str]]:
    keyword, sep, rest = payload.partition(b"\x00")
    if not sep or len(rest) < 2:
        return None
    compressed, method = rest[0], rest[1]
    # language tag and translated keyword are both NUL terminated
    _language, sep1, rest = rest[2:].partition(b"\x00")
    _translated, sep2, text = rest.partition(b"\x00")
    if not (sep1 and sep2):
        return None
    if compressed:
        if method != 0:
            return None
        text = zlib.decompress(text)
    return _decode(keyword), _decode(text)


_PARSERS = {
    b"tEXt": _parse_text,
    b"zTXt": _parse_ztxt,
    b"iTXt": _parse_itxt,
}


def extract_text_chunks(data: bytes) -> Dict[str, str]:
    """Return every text chunk in ``data`` as ``{keyword: text}``.

    Repeated keywords keep the last value. Slices are clamped to the buffer,
    so a chunk whose declared length runs past the end yields whatever bytes
    remain and the walk stops on the next iteration.
    """
    chunks: Dict[str, str] = {}
    if not is_png(data):
        return chunks

    offset = len(PNG_SIGNATURE)
    end = len(data)
    while offset < end - 8:
        length, chunk_type = _HEADER.unpack_from(data, offset)
        if chunk_type == b"IEND":
            break

        parser = _PARSERS.get(chunk_type)
        if parser is not None:
            start = offset + 8
            payload = data[start:start + length]
            try:
                pair = parser(payload)
            except (zlib.error, IndexError) as e:
                logger.debug("Skipping unreadable %s chunk at offset %d: %s",
                             chunk_type.decode("ascii", "replace"), offset, e)
                pair = None
            if pair is not None:
                keyword, text = pair
                chunks[keyword] = text

        offset += 8 + length + 4  # header + data + CRC

    return chunks
