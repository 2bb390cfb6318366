#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Interpretation of vendor-specific generation metadata.

Two conventions are understood:

- ChatGPT exports: a JSON document in the ``prompt`` chunk.
- ComfyUI / A1111 and friends: a ``workflow`` graph, an API-format ``prompt``
  graph, A1111 ``parameters`` text and a ``Software`` tag.

Every branch is best effort. Unparsable payloads degrade to a note line and
a warning on the result, never to an exception.
"""

import json
from datetime import date
from typing import Any, Dict, List, Optional, Tuple

from ..config import CHATGPT_FILENAME_PREFIX, MIN_PROMPT_LENGTH, MIN_RAW_PROMPT_LENGTH
from ..models.ai_info import AIInfo, InterpretResult

SOURCE_CHATGPT = "chatgpt"
SOURCE_GENERIC = "generic"

CHATGPT_TAGS = "ChatGPT,AI-Generated,Image-Gen"
CHATGPT_FALLBACK_TAGS = "ChatGPT,AI-Generated"
COMFYUI_TAGS = "ComfyUI,AI-Generated"
VIDEO_TAGS = "Video,AI-Generated"

# (field, label) pairs listed in ChatGPT notes when present
_CHATGPT_NOTE_FIELDS = (
    ("filename", "📄 Original filename: {}"),
    ("style", "🎨 Style: {}"),
    ("aspect_ratio", "📐 Aspect ratio: {}"),
    ("resolution", "🔍 Resolution: {}"),
    ("file_size_mb", "💾 File size: {} MB"),
    ("source_image", "🖼️ Source image: {}"),
)


def detect_source_hint(filename: str) -> str:
    """Pick the interpreter variant from the upload's filename."""
    if filename and filename.startswith(CHATGPT_FILENAME_PREFIX):
        return SOURCE_CHATGPT
    return SOURCE_GENERIC


def _loads(text: str) -> Tuple[Any, Optional[str]]:
    try:
        return json.loads(text), None
    except (ValueError, TypeError, RecursionError) as e:
        return None, str(e)


def interpret(chunks: Dict[str, str], source_hint: str = SOURCE_GENERIC,
              today: Optional[date] = None) -> InterpretResult:
    if source_hint == SOURCE_CHATGPT:
        return interpret_chatgpt(chunks)
    return interpret_generic(chunks, today=today)


def interpret_chatgpt(chunks: Dict[str, str]) -> InterpretResult:
    info = AIInfo()
    warnings: List[str] = []

    raw = chunks.get("prompt")
    if not raw:
        return InterpretResult(info, warnings)

    data, err = _loads(raw)
    if err is None and not isinstance(data, dict):
        err = f"expected a JSON object, got {type(data).__name__}"
    if err is not None:
        info.notes += "🤖 ChatGPT data found but could not parse JSON\n"
        info.tags = CHATGPT_FALLBACK_TAGS
        warnings.append(f"ChatGPT prompt chunk is not usable JSON: {err}")
        return InterpretResult(info, warnings)

    combined = ""
    if data.get("prompt"):
        combined += f"USER PROMPT:\n{data['prompt']}\n\n"
    if data.get("internal_prompt"):
        combined += f"INTERNAL PROMPT:\n{data['internal_prompt']}"
    info.prompt = combined.strip()

    if data.get("tool"):
        info.model = str(data["tool"])

    lines = [
        "🤖 ChatGPT Image Generation",
        f"📅 Generated: {data.get('date_generated') or 'Unknown'}",
    ]
    for key, label in _CHATGPT_NOTE_FIELDS:
        if data.get(key):
            lines.append(label.format(data[key]))
    info.notes = "".join(line + "\n" for line in lines)
    info.tags = CHATGPT_TAGS
    return InterpretResult(info, warnings)


def _workflow_summary(workflow: Dict[str, Any]) -> Tuple[int, List[str], str]:
    """Return (node count, sorted node types, first usable prompt) for a graph."""
    node_types = set()
    prompt = ""

    nodes = workflow.get("nodes")
    if isinstance(nodes, list):
        # UI format: {"nodes": [{"type": ..., "widgets_values": [...]}, ...]}
        for node in nodes:
            if isinstance(node, dict) and node.get("type"):
                node_types.add(str(node["type"]))
        for node in nodes:
            if not isinstance(node, dict) or node.get("type") != "CLIPTextEncode":
                continue
            widgets = node.get("widgets_values")
            if isinstance(widgets, list) and widgets:
                text = widgets[0]
                if isinstance(text, str) and len(text) > MIN_PROMPT_LENGTH:
                    prompt = text
                    break
        return len(nodes), sorted(node_types), prompt

    # API format: {"<node id>": {"class_type": ..., "inputs": {...}}, ...}
    for node in workflow.values():
        if isinstance(node, dict) and node.get("class_type"):
            node_types.add(str(node["class_type"]))
    for node in workflow.values():
        inputs = node.get("inputs") if isinstance(node, dict) else None
        text = inputs.get("text") if isinstance(inputs, dict) else None
        if isinstance(text, str) and len(text) > MIN_PROMPT_LENGTH:
            prompt = text
            break
    return len(workflow), sorted(node_types), prompt


def interpret_generic(chunks: Dict[str, str], today: Optional[date] = None) -> InterpretResult:
    info = AIInfo()
    warnings: List[str] = []
    today = today or date.today()

    raw_workflow = chunks.get("workflow")
    if raw_workflow:
        workflow, err = _loads(raw_workflow)
        if err is None and not isinstance(workflow, dict):
            err = f"expected a JSON object, got {type(workflow).__name__}"
        if err is None:
            count, node_types, prompt = _workflow_summary(workflow)
            info.notes += f"📅 Generated: {today.isoformat()}\n"
            info.notes += f"🔧 ComfyUI Workflow detected ({count} nodes)\n"
            if node_types:
                info.notes += f"🔗 Node Types: {', '.join(node_types)}\n"
            info.prompt = prompt
        else:
            info.notes += "🔧 ComfyUI Workflow data found (raw)\n"
            warnings.append(f"Workflow chunk is not usable JSON: {err}")

    raw_prompt = chunks.get("prompt")
    if raw_prompt:
        prompt_data, err = _loads(raw_prompt)
        if err is None:
            if isinstance(prompt_data, dict):
                values = prompt_data.values()
            elif isinstance(prompt_data, list):
                values = prompt_data
            else:
                values = ()
            for value in values:
                if info.prompt:
                    break
                if isinstance(value, str) and len(value) > MIN_PROMPT_LENGTH:
                    info.prompt = value
        elif len(raw_prompt) > MIN_RAW_PROMPT_LENGTH and not info.prompt:
            info.prompt = raw_prompt

    if chunks.get("parameters"):
        info.prompt = info.prompt or chunks["parameters"]
        info.notes += "🤖 A1111 Parameters detected\n"

    if chunks.get("Software"):
        info.model = chunks["Software"]
    if chunks.get("software"):
        info.model = chunks["software"]

    if raw_workflow or raw_prompt:
        info.tags = info.tags or COMFYUI_TAGS

    return InterpretResult(info, warnings)


def interpret_video(filename: str, size_bytes: int, today: Optional[date] = None) -> InterpretResult:
    """Videos carry no generation chunks; describe the file itself."""
    today = today or date.today()
    stem = filename.rsplit(".", 1)[0] if "." in filename else filename
    info = AIInfo(
        title=stem,
        tags=VIDEO_TAGS,
        notes=(
            "🎬 Video file\n"
            f"📅 Added: {today.isoformat()}\n"
            f"💾 Size: {size_bytes / (1024 * 1024):.2f} MB\n"
        ),
    )
    return InterpretResult(info)
