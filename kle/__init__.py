"""
kle package

Codec for keyboard-layout-editor.com raw data.
"""

from kle.exporter import WriterCursor, export_kle, export_to_kle, serialize_kle
from kle.parser import ParserCursor, import_kle, import_kle_document, parse_kle, parse_kle_raw
from kle.properties import KLEFormatError, KLEMetadata, KLEProperties

__all__ = [
    "KLEFormatError",
    "KLEMetadata",
    "KLEProperties",
    "ParserCursor",
    "WriterCursor",
    "export_kle",
    "export_to_kle",
    "import_kle",
    "import_kle_document",
    "parse_kle",
    "parse_kle_raw",
    "serialize_kle",
]
