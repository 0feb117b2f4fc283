"""Insight model: a stored free-text summary of one branch."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class InsightInfo(BaseModel):
    branch_id: str
    content: str
    metadata: Optional[dict] = None
    created_at: datetime
    updated_at: datetime
