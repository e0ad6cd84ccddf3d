"""
Chat Types

The chat transcript is owned by the orchestration layer; tools only read it
(save_chat_history archives it, edit_image takes its latest image).
"""

from __future__ import annotations

import re
from typing import Literal

from pydantic import BaseModel

_DATA_URL = re.compile(r"^data:(?P<mime>[^;,]+)?(?:;base64)?,(?P<data>.*)$", re.DOTALL)


class ChatImage(BaseModel):
    """An image attached to a chat message, as a data URL."""

    url: str
    source: str = "upload"

    def split_data_url(self) -> tuple[str, str]:
        """Return (mime_type, base64 data). Unknown headers default to image/jpeg."""
        match = _DATA_URL.match(self.url)
        if match is None:
            return "image/jpeg", self.url
        return match.group("mime") or "image/jpeg", match.group("data")


class ChatMessage(BaseModel):
    """One transcript entry."""

    sender: Literal["user", "persona", "system"]
    text: str = ""
    type: Literal["message", "thought"] = "message"
    image: ChatImage | None = None
