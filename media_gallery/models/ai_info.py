#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Data structures for interpreted AI generation metadata.
"""

from dataclasses import dataclass, field, asdict
from typing import Any, Dict, List


@dataclass
class AIInfo:
    """Descriptive fields recovered from generation metadata."""
    title: str = ""
    prompt: str = ""
    model: str = ""
    tags: str = ""   # comma-joined
    notes: str = ""

    def to_dict(self) -> Dict[str, str]:
        return asdict(self)


@dataclass
class InterpretResult:
    """Best-effort interpretation plus the anomalies met along the way."""
    value: AIInfo
    warnings: List[str] = field(default_factory=list)


@dataclass
class Extraction:
    """Everything recovered from an upload before it is stored."""
    ai_info: AIInfo
    metadata: Dict[str, Any]
    media_type: str
    warnings: List[str] = field(default_factory=list)
