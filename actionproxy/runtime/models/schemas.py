"""
Pydantic schema definitions.

Request bodies of the /init and /run protocol calls.
"""

import base64
import binascii
from typing import Any, Dict, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from actionproxy.runtime.core.exceptions import MissingCodePayloadError
from actionproxy.runtime.models.action import ZIP_MAGIC, ActionPackage


class InitValue(BaseModel):
    """The `value` object of an /init body."""

    model_config = ConfigDict(extra="ignore")

    main: str = ""
    code: Optional[str] = None
    binary: bool = False

    def to_package(self) -> ActionPackage:
        """
        Decode the code payload.

        `binary` code is base64. Text code is Python source, unless it is the
        base64 rendering of a zip archive.
        """
        if not self.code:
            raise MissingCodePayloadError("no code")

        if self.binary:
            try:
                raw = base64.b64decode(self.code, validate=True)
            except (binascii.Error, ValueError) as e:
                raise MissingCodePayloadError(f"binary code is not valid base64: {e}") from e
        else:
            raw = _decode_archive(self.code) or self.code.encode("utf-8")

        if not raw:
            raise MissingCodePayloadError("empty code")
        return ActionPackage(entry_point=self.main, code=raw)


class InitRequest(BaseModel):
    """Body of POST /init."""

    model_config = ConfigDict(extra="ignore")

    value: Optional[InitValue] = None


class RunRequest(BaseModel):
    """Body of POST /run."""

    model_config = ConfigDict(extra="ignore")

    value: Dict[str, Any] = Field(default_factory=dict)
    api_host: Optional[str] = None
    api_key: Optional[str] = None
    namespace: Optional[str] = None
    action_name: Optional[str] = None
    activation_id: Optional[str] = None
    deadline: Optional[Union[int, float, str]] = None

    @field_validator("value", mode="before")
    @classmethod
    def _null_value_is_empty(cls, v):
        return {} if v is None else v


def _decode_archive(text: str) -> Optional[bytes]:
    try:
        raw = base64.b64decode(text, validate=True)
    except (binascii.Error, ValueError):
        return None
    return raw if raw.startswith(ZIP_MAGIC) else None
