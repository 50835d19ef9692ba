"""
Uploaded files forwarded to edge functions as multipart parts.
"""
from dataclasses import dataclass


@dataclass
class MediaFile:
    """An uploaded image (issue photo, Aadhar scan, selfie)."""
    filename: str
    content: bytes
    content_type: str = "application/octet-stream"

    def as_part(self) -> tuple:
        """httpx ``files=`` tuple."""
        return (self.filename, self.content, self.content_type)

    @property
    def is_empty(self) -> bool:
        return not self.content
