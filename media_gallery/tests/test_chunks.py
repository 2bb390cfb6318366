#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Unit tests for PNG text chunk extraction.
"""

import struct

from media_gallery.metadata.chunks import extract_text_chunks, is_png

from .fixtures.builders import (
    PNG_SIGNATURE, build_png, itxt_payload, png_chunk, png_with_text, text_payload, ztxt_payload,
)


class TestTextChunks:
    """tEXt chunks round-trip through the parser."""

    def test_single_text_chunk(self):
        data = png_with_text({"parameters": "a cat, 20 steps"})
        assert extract_text_chunks(data) == {"parameters": "a cat, 20 steps"}

    def test_multiple_keywords(self):
        data = png_with_text({"workflow": '{"nodes": []}', "prompt": "{}", "Software": "ComfyUI"})
        chunks = extract_text_chunks(data)
        assert chunks == {"workflow": '{"nodes": []}', "prompt": "{}", "Software": "ComfyUI"}

    def test_repeated_keyword_last_wins(self):
        data = build_png([
            (b"tEXt", text_payload("prompt", "first")),
            (b"tEXt", text_payload("prompt", "second")),
        ])
        assert extract_text_chunks(data) == {"prompt": "second"}

    def test_empty_text_value(self):
        data = build_png([(b"tEXt", b"Comment\x00")])
        assert extract_text_chunks(data) == {"Comment": ""}

    def test_large_value(self):
        big = "x" * 2_000_000
        assert extract_text_chunks(png_with_text({"workflow": big}))["workflow"] == big

    def test_text_without_separator_is_skipped(self):
        data = build_png([(b"tEXt", b"no-separator-here")])
        assert extract_text_chunks(data) == {}


class TestCompressedChunks:
    """zTXt and iTXt are decoded as well."""

    def test_ztxt(self):
        data = build_png([(b"zTXt", ztxt_payload("workflow", '{"nodes": [1, 2]}'))])
        assert extract_text_chunks(data) == {"workflow": '{"nodes": [1, 2]}'}

    def test_itxt_uncompressed(self):
        data = build_png([(b"iTXt", itxt_payload("prompt", "ünïcode prompt"))])
        assert extract_text_chunks(data) == {"prompt": "ünïcode prompt"}

    def test_itxt_compressed(self):
        data = build_png([(b"iTXt", itxt_payload("prompt", "compressed prompt", compressed=True))])
        assert extract_text_chunks(data) == {"prompt": "compressed prompt"}

    def test_corrupt_ztxt_is_skipped(self):
        data = build_png([
            (b"zTXt", b"workflow\x00\x00not-deflate-data"),
            (b"tEXt", text_payload("Software", "ComfyUI")),
        ])
        assert extract_text_chunks(data) == {"Software": "ComfyUI"}

    def test_unknown_compression_method_is_skipped(self):
        data = build_png([(b"zTXt", b"workflow\x00\x07abc")])
        assert extract_text_chunks(data) == {}


class TestMalformedInput:
    """Anything that is not a well-formed PNG yields a (possibly partial) map, never an error."""

    def test_not_png(self):
        assert extract_text_chunks(b"GIF89a" + b"\x00" * 100) == {}
        assert not is_png(b"\xff\xd8\xff\xe0")

    def test_empty_and_tiny_buffers(self):
        assert extract_text_chunks(b"") == {}
        assert extract_text_chunks(PNG_SIGNATURE) == {}
        assert extract_text_chunks(PNG_SIGNATURE + b"\x00\x00") == {}

    def test_truncated_chunk_length(self):
        """A chunk claiming more bytes than remain must not raise."""
        data = PNG_SIGNATURE + struct.pack(">I", 10_000) + b"tEXt" + b"key\x00value"
        chunks = extract_text_chunks(data)
        assert chunks == {"key": "value"}

    def test_truncated_after_valid_chunk(self):
        valid = png_chunk(b"tEXt", text_payload("parameters", "kept"))
        data = PNG_SIGNATURE + valid + struct.pack(">I", 99_999) + b"tEXt"
        assert extract_text_chunks(data) == {"parameters": "kept"}

    def test_stops_at_iend(self):
        data = build_png() + png_chunk(b"tEXt", text_payload("after", "ignored"))
        assert extract_text_chunks(data) == {}

    def test_missing_iend(self):
        data = build_png([(b"tEXt", text_payload("a", "b"))], with_iend=False)
        assert extract_text_chunks(data) == {"a": "b"}
