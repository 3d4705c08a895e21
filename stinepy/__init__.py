"""
stinepy - client library and command line tool for STINE, the campus management
portal of Universität Hamburg.
"""

from pathlib import Path

from stinepy.errors import StineError
from stinepy.model import Language, LazyLevel
from stinepy.semester import Semester
from stinepy.stine import Stine

__version__ = (Path(__file__).resolve().parent / "VERSION").read_text(encoding="utf-8").strip()

__all__ = ["Language", "LazyLevel", "Semester", "Stine", "StineError", "__version__"]
