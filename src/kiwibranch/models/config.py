"""Configuration model for Kiwi.

KiwiConfig holds per-instance settings for storage and for the
fork/merge copy behaviour.
"""

from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel

from kiwibranch.prompts.summarize import INSIGHT_SYSTEM

# What a fork does when its cutoff message id does not resolve.
MissingCutoffPolicy = Literal["fail", "full_copy"]

# How copy rows get their ids.
CopyIdMode = Literal["random", "deterministic"]


class KiwiConfig(BaseModel):
    """Per-instance configuration."""

    db_path: str = ":memory:"
    db_url: Optional[str] = None
    missing_cutoff: MissingCutoffPolicy = "fail"
    copy_ids: CopyIdMode = "random"
    default_model: Optional[str] = None
    summary_system_prompt: str = INSIGHT_SYSTEM
