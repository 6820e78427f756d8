"""Pydantic models describing the imapbox runtime configuration."""
from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class ImapSettings(BaseModel):
    """Server level defaults applied to every session."""

    model_config = ConfigDict(extra="forbid")

    port: int = Field(default=993, gt=0, le=65535)
    ssl: bool = True
    timeout: Optional[float] = Field(default=30.0, gt=0)
    probe_interval: Optional[float] = Field(default=60.0, ge=0)


class MessageSettings(BaseModel):
    """Limits applied while assembling fetched messages."""

    model_config = ConfigDict(extra="forbid")

    max_body_bytes: int = Field(default=1_000_000, gt=0)


class RuntimeConfig(BaseModel):
    """Root configuration loaded from ``imapbox.yaml``."""

    model_config = ConfigDict(extra="forbid")

    version: int = 1
    imap: ImapSettings = Field(default_factory=ImapSettings)
    message: MessageSettings = Field(default_factory=MessageSettings)
