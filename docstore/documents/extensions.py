"""
File extension classification for uploads.

A fixed, ordered lookup table maps an extension to a coarse category.
Categories are mutually exclusive; the first match wins so results are
deterministic. Unknown extensions classify as "" and are not accepted.
"""

from __future__ import annotations

import os
from enum import Enum
from typing import Dict, FrozenSet, Optional, Tuple


class ExtensionCategory(str, Enum):
    AUDIO = "audio"
    CSV = "csv"
    DOCUMENT = "document"
    EXCEL = "excel"
    IMAGE = "image"
    MOVIE = "movie"
    PDF = "pdf"
    POWERPOINT = "powerpoint"
    TEXT = "text"


class DcmiType(str, Enum):
    """DCMI Type Vocabulary terms recorded with each upload."""
    COLLECTION = "Collection"
    DATASET = "Dataset"
    IMAGE = "Image"
    MOVING_IMAGE = "MovingImage"
    SOFTWARE = "Software"
    SOUND = "Sound"
    STILL_IMAGE = "StillImage"
    TEXT = "Text"


EXTENSION_TABLE: Tuple[Tuple[ExtensionCategory, FrozenSet[str]], ...] = (
    (ExtensionCategory.IMAGE, frozenset({".BMP", ".GIF", ".JPEG", ".JPG", ".PNG", ".TIF", ".TIFF"})),
    (ExtensionCategory.MOVIE, frozenset({
        ".AVI", ".ASF", ".MPG", ".MPEG", ".MOV", ".MP4", ".MKV", ".3GP", ".WMV", ".WEBM", ".OGG",
    })),
    (ExtensionCategory.EXCEL, frozenset({".XLS", ".XLSX"})),
    (ExtensionCategory.POWERPOINT, frozenset({".PPT", ".PPS", ".PPTX", ".PPSX"})),
    (ExtensionCategory.TEXT, frozenset({".TXT"})),
    (ExtensionCategory.DOCUMENT, frozenset({".DOC", ".DOCX", ".ODT"})),
    (ExtensionCategory.PDF, frozenset({".PDF"})),
    (ExtensionCategory.CSV, frozenset({".CSV"})),
    (ExtensionCategory.AUDIO, frozenset({".MP3", ".WAV"})),
)

ACCEPTED_EXTENSIONS: FrozenSet[str] = frozenset().union(*(exts for _, exts in EXTENSION_TABLE))

_DCMI_BY_CATEGORY: Dict[ExtensionCategory, DcmiType] = {
    ExtensionCategory.AUDIO: DcmiType.SOUND,
    ExtensionCategory.CSV: DcmiType.DATASET,
    ExtensionCategory.EXCEL: DcmiType.DATASET,
    ExtensionCategory.IMAGE: DcmiType.STILL_IMAGE,
    ExtensionCategory.MOVIE: DcmiType.MOVING_IMAGE,
    ExtensionCategory.POWERPOINT: DcmiType.IMAGE,
}


def _canonical(extension: Optional[str]) -> str:
    if not extension:
        return ""
    ext = extension.strip().upper()
    if ext and not ext.startswith("."):
        ext = "." + ext
    return ext


def extension_of(filename: Optional[str]) -> str:
    """
    Extension of ``filename`` including the dot, as written ("" if none).

    Everything from the last dot of the base name counts, so a dot-file such
    as ".pdf" has the extension ".pdf". A trailing dot is no extension.
    """
    if not filename:
        return ""
    name = os.path.basename(filename.replace("\\", "/"))
    dot = name.rfind(".")
    if dot == -1 or dot == len(name) - 1:
        return ""
    return name[dot:]


def classify(extension: Optional[str]) -> str:
    """
    Category for an extension ("pdf", ".PDF" and "Pdf" are equivalent).

    Total: unknown or empty extensions return "".
    """
    ext = _canonical(extension)
    if not ext:
        return ""
    for category, extensions in EXTENSION_TABLE:
        if ext in extensions:
            return category.value
    return ""


def is_accepted(filename: Optional[str]) -> bool:
    """True if the file name carries an extension from the known table."""
    return _canonical(extension_of(filename)) in ACCEPTED_EXTENSIONS


def dcmi_type_for(category: str) -> DcmiType:
    """DCMI type implied by an extension category; Text when nothing more specific fits."""
    try:
        return _DCMI_BY_CATEGORY.get(ExtensionCategory(category), DcmiType.TEXT)
    except ValueError:
        return DcmiType.TEXT
