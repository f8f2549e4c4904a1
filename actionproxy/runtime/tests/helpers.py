"""
Where: actionproxy/runtime/tests/helpers.py
What: Builders for /init payloads from the fixture actions.
Why: Shared by route, loader and concurrency tests.
"""

import base64
import io
import zipfile
from pathlib import Path
from typing import Dict

ACTIONS_DIR = Path(__file__).parent / "fixtures" / "actions"


def action_source(name: str) -> str:
    """Source text of a fixture action module."""
    return (ACTIONS_DIR / f"{name}.py").read_text(encoding="utf-8")


def zip_bytes(files: Dict[str, str]) -> bytes:
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as zf:
        for name, source in files.items():
            zf.writestr(name, source)
    return buffer.getvalue()


def zip_code(files: Dict[str, str]) -> str:
    """Base64 zip archive holding `files` (archive path -> source)."""
    return base64.b64encode(zip_bytes(files)).decode("ascii")


def init_body(main: str, code: str, binary: bool = False) -> dict:
    return {"value": {"main": main, "code": code, "binary": binary}}
