"""
Action package model.

The immutable unit handed from /init to the code loader.
"""

from pydantic import BaseModel, ConfigDict

ZIP_MAGIC = b"PK\x03\x04"


class ActionPackage(BaseModel):
    """Entry point plus raw code bytes (a zip archive or Python source)."""

    model_config = ConfigDict(frozen=True)

    entry_point: str
    code: bytes

    @property
    def is_archive(self) -> bool:
        return self.code.startswith(ZIP_MAGIC)
