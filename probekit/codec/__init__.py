"""Structured value codec exports."""

from probekit.codec.attribute_codec import (
    KNOWN_TAGS,
    AttributeCodec,
    AttributeWire,
    DynamicValue,
    decode,
    encode,
)

__all__ = [
    "AttributeCodec",
    "AttributeWire",
    "DynamicValue",
    "KNOWN_TAGS",
    "decode",
    "encode",
]
