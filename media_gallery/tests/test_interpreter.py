#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Unit tests for the generation metadata interpreter and the extraction facade.
"""

import json
from datetime import date

import pytest

from media_gallery.errors import UnsupportedMediaError
from media_gallery.metadata import extract_metadata
from media_gallery.metadata.interpreter import (
    CHATGPT_FALLBACK_TAGS, CHATGPT_TAGS, COMFYUI_TAGS, SOURCE_CHATGPT, SOURCE_GENERIC, VIDEO_TAGS,
    detect_source_hint, interpret, interpret_chatgpt, interpret_generic, interpret_video,
)
from media_gallery.models.upload import UploadedFile

from .fixtures.builders import comfy_workflow, png_with_text

TODAY = date(2025, 7, 23)


class TestSourceHint:

    def test_chatgpt_prefix(self):
        assert detect_source_hint("ChatGPT Image Jul 23, 2025.png") == SOURCE_CHATGPT

    def test_other_names(self):
        assert detect_source_hint("ComfyUI_00001_.png") == SOURCE_GENERIC
        assert detect_source_hint("chatgpt.png") == SOURCE_GENERIC
        assert detect_source_hint("") == SOURCE_GENERIC


class TestChatGPT:
    """ChatGPT exports keep a JSON document in the prompt chunk."""

    def test_combined_prompt(self):
        result = interpret_chatgpt({"prompt": '{"prompt":"A","internal_prompt":"B"}'})
        assert result.value.prompt == "USER PROMPT:\nA\n\nINTERNAL PROMPT:\nB"
        assert result.warnings == []

    def test_user_prompt_only_is_trimmed(self):
        result = interpret_chatgpt({"prompt": '{"prompt":"just this"}'})
        assert result.value.prompt == "USER PROMPT:\njust this"

    def test_fields_and_notes(self):
        doc = {
            "prompt": "a red fox",
            "tool": "DALL-E 3",
            "date_generated": "2025-07-23",
            "filename": "fox.png",
            "aspect_ratio": "1:1",
            "file_size_mb": 1.5,
        }
        info = interpret_chatgpt({"prompt": json.dumps(doc)}).value
        assert info.model == "DALL-E 3"
        assert info.tags == CHATGPT_TAGS
        assert info.notes == (
            "🤖 ChatGPT Image Generation\n"
            "📅 Generated: 2025-07-23\n"
            "📄 Original filename: fox.png\n"
            "📐 Aspect ratio: 1:1\n"
            "💾 File size: 1.5 MB\n"
        )

    def test_unknown_generation_date(self):
        info = interpret_chatgpt({"prompt": '{"prompt": "x"}'}).value
        assert "📅 Generated: Unknown\n" in info.notes

    def test_invalid_json(self):
        result = interpret_chatgpt({"prompt": "{not json"})
        assert result.value.prompt == ""
        assert result.value.model == ""
        assert result.value.tags == CHATGPT_FALLBACK_TAGS
        assert "could not parse JSON" in result.value.notes
        assert len(result.warnings) == 1

    def test_non_object_json(self):
        result = interpret_chatgpt({"prompt": '["a", "b"]'})
        assert result.value.tags == CHATGPT_FALLBACK_TAGS
        assert result.warnings

    def test_no_prompt_chunk(self):
        info = interpret_chatgpt({"parameters": "x"}).value
        assert info.to_dict() == {"title": "", "prompt": "", "model": "", "tags": "", "notes": ""}

    def test_dispatch(self):
        result = interpret({"prompt": '{"prompt":"A"}'}, SOURCE_CHATGPT)
        assert result.value.tags == CHATGPT_TAGS


class TestGeneric:
    """ComfyUI and A1111 conventions."""

    def test_two_node_workflow_defaults(self):
        info = interpret_generic({"workflow": comfy_workflow()}, today=TODAY).value
        assert info.tags == COMFYUI_TAGS
        assert "(2 nodes)" in info.notes
        assert "📅 Generated: 2025-07-23\n" in info.notes
        assert "🔗 Node Types: CLIPTextEncode, CheckpointLoaderSimple\n" in info.notes
        assert info.prompt == "a castle on a hill at dawn, highly detailed"

    def test_short_clip_text_is_not_a_prompt(self):
        info = interpret_generic({"workflow": comfy_workflow("short")}, today=TODAY).value
        assert info.prompt == ""

    def test_api_format_workflow(self):
        workflow = {
            "3": {"class_type": "KSampler", "inputs": {"seed": 1}},
            "6": {"class_type": "CLIPTextEncode", "inputs": {"text": "neon city street at night"}},
            "7": {"class_type": "CLIPTextEncode", "inputs": {"text": "blurry"}},
        }
        info = interpret_generic({"workflow": json.dumps(workflow)}, today=TODAY).value
        assert "(3 nodes)" in info.notes
        assert "🔗 Node Types: CLIPTextEncode, KSampler\n" in info.notes
        assert info.prompt == "neon city street at night"

    def test_unparsable_workflow(self):
        result = interpret_generic({"workflow": "{broken"}, today=TODAY)
        assert "🔧 ComfyUI Workflow data found (raw)\n" in result.value.notes
        assert result.value.tags == COMFYUI_TAGS
        assert len(result.warnings) == 1

    def test_prompt_graph_first_long_string(self):
        chunks = {"prompt": json.dumps({"a": "tiny", "b": "a long enough prompt value", "c": "another long prompt"})}
        assert interpret_generic(chunks).value.prompt == "a long enough prompt value"

    def test_raw_prompt_text(self):
        assert interpret_generic({"prompt": "plain prompt text"}).value.prompt == "plain prompt text"
        assert interpret_generic({"prompt": "tiny"}).value.prompt == ""

    def test_workflow_prompt_takes_precedence(self):
        chunks = {"workflow": comfy_workflow(), "prompt": "raw prompt from another chunk"}
        assert interpret_generic(chunks, today=TODAY).value.prompt == "a castle on a hill at dawn, highly detailed"

    def test_a1111_parameters(self):
        info = interpret_generic({"parameters": "masterpiece, 1girl\nSteps: 20"}).value
        assert info.prompt == "masterpiece, 1girl\nSteps: 20"
        assert "🤖 A1111 Parameters detected\n" in info.notes
        assert info.tags == ""

    def test_software_sets_model(self):
        assert interpret_generic({"Software": "ComfyUI"}).value.model == "ComfyUI"
        assert interpret_generic({"Software": "A", "software": "B"}).value.model == "B"

    def test_empty_chunks(self):
        result = interpret({}, SOURCE_GENERIC)
        assert result.value.to_dict() == {"title": "", "prompt": "", "model": "", "tags": "", "notes": ""}
        assert result.warnings == []


class TestVideoAndFacade:

    def test_interpret_video(self):
        info = interpret_video("clip.final.mp4", 3 * 1024 * 1024, today=TODAY).value
        assert info.title == "clip.final"
        assert info.tags == VIDEO_TAGS
        assert info.notes == "🎬 Video file\n📅 Added: 2025-07-23\n💾 Size: 3.00 MB\n"

    def test_extract_png(self):
        upload = UploadedFile("ComfyUI_0001_.png", png_with_text({"workflow": comfy_workflow()}))
        extraction = extract_metadata(upload, today=TODAY)
        assert extraction.media_type == "image"
        assert extraction.ai_info.tags == COMFYUI_TAGS
        assert set(extraction.metadata) == {"workflow"}

    def test_extract_chatgpt_by_filename(self):
        upload = UploadedFile("ChatGPT Image 1.png", png_with_text({"prompt": '{"prompt":"A"}'}))
        assert extract_metadata(upload).ai_info.tags == CHATGPT_TAGS

    def test_extract_jpeg_has_no_chunks(self):
        extraction = extract_metadata(UploadedFile("photo.jpg", b"\xff\xd8\xff\xe0 not png"))
        assert extraction.media_type == "image"
        assert extraction.metadata == {}

    def test_extract_video(self):
        upload = UploadedFile("clip.mp4", b"\x00" * 2048, last_modified="2025-07-01T10:00:00Z")
        extraction = extract_metadata(upload, today=TODAY)
        assert extraction.media_type == "video"
        assert extraction.metadata["fileName"] == "clip.mp4"
        assert extraction.metadata["fileSize"] == 2048
        assert extraction.metadata["creationDate"] == "2025-07-01"

    def test_unsupported_media(self):
        with pytest.raises(UnsupportedMediaError):
            extract_metadata(UploadedFile("notes.txt", b"hello"))
