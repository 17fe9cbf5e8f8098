from __future__ import annotations

from typing import Optional, Union

from pydantic import BaseModel


class GenerationResult(BaseModel):
    """What every provider call hands back to the dispatcher.

    ``data`` is the payload on success (bytes for media, str for text answers)
    and the user-facing error text on failure.
    """

    success: bool
    data: Union[bytes, str]
    description: Optional[str] = None

    @classmethod
    def ok(cls, data: Union[bytes, str], description: str | None = None) -> "GenerationResult":
        return cls(success=True, data=data, description=description)

    @classmethod
    def failure(cls, message: str) -> "GenerationResult":
        return cls(success=False, data=message)


class ImageInput(BaseModel):
    data: bytes
    content_type: str = "image/png"
    filename: str = "image.png"
