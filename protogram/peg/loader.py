"""Read grammar and input files."""

from __future__ import annotations
from pathlib import Path
from typing import Union


def load_text(path: Union[str, Path], encoding: str = "utf-8") -> str:
    """
    Load a text file with newlines normalized to "\\n".
    """
    text = Path(path).read_text(encoding=encoding)
    return text.replace("\r\n", "\n").replace("\r", "\n")
