"""Typed attribute codec for structured key-value stores.

Maps a dynamic value tree onto a tag-discriminated wire format where every
attribute is a single-key mapping naming its runtime type::

    None          -> {"NULL": True}
    "text"        -> {"S": "text"}
    12 / 1.5      -> {"N": "12"} / {"N": "1.5"}
    True          -> {"BOOL": True}
    [1, "a"]      -> {"L": [{"N": "1"}, {"S": "a"}]}
    {"k": "v"}    -> {"M": {"k": {"S": "v"}}}

Numbers travel as decimal strings. Integers round-trip exactly, floats are
written with ``repr`` and therefore round-trip exactly as doubles. A
``Decimal`` carrying more significant digits than a double can hold loses
precision when decoded as ``float``; construct the codec with
``use_decimal=True`` to decode non-integral numbers as ``Decimal`` instead.

Recursion depth is not limited here. Callers that accept untrusted input must
bound its depth before encoding or decoding.
"""

from __future__ import annotations

import math
import re
from collections.abc import Mapping
from decimal import Decimal, InvalidOperation
from typing import Any

from probekit.exceptions import CodecError, CodecFailure

TAG_NULL = "NULL"
TAG_STRING = "S"
TAG_NUMBER = "N"
TAG_BOOL = "BOOL"
TAG_LIST = "L"
TAG_MAP = "M"

KNOWN_TAGS = frozenset({TAG_NULL, TAG_STRING, TAG_NUMBER, TAG_BOOL, TAG_LIST, TAG_MAP})

_INTEGER_PATTERN = re.compile(r"^[+-]?\d+$")

DynamicValue = Any
AttributeWire = dict[str, Any]


class AttributeCodec:
    """Recursive encoder/decoder between dynamic values and attribute wire."""

    def __init__(self, *, use_decimal: bool = False) -> None:
        self._use_decimal = use_decimal

    def encode(self, value: DynamicValue) -> AttributeWire:
        """Encode one dynamic value into its tagged wire form."""
        return self._encode(value, set())

    def decode(self, wire: AttributeWire) -> DynamicValue:
        """Decode one tagged wire attribute back into a dynamic value."""
        return self._decode(wire)

    def encode_item(self, item: Mapping[str, DynamicValue]) -> dict[str, AttributeWire]:
        """Encode a top-level item (attribute name -> value)."""
        if not isinstance(item, Mapping):
            raise CodecError(CodecFailure.UNSUPPORTED_TYPE, f"item must be a mapping, got {type(item).__name__}")
        encoded = self._encode(item, set())
        return encoded[TAG_MAP]

    def decode_item(self, item: Mapping[str, AttributeWire]) -> dict[str, DynamicValue]:
        """Decode a top-level item (attribute name -> wire attribute)."""
        return self._decode({TAG_MAP: item})

    def _encode(self, value: DynamicValue, active: set[int]) -> AttributeWire:
        if value is None:
            return {TAG_NULL: True}
        if isinstance(value, str):
            return {TAG_STRING: value}
        # bool is an int subclass and must be checked first.
        if isinstance(value, bool):
            return {TAG_BOOL: value}
        if isinstance(value, (int, float, Decimal)):
            return {TAG_NUMBER: _format_number(value)}
        if isinstance(value, (list, tuple)):
            marker = self._enter(value, active)
            try:
                return {TAG_LIST: [self._encode(element, active) for element in value]}
            finally:
                active.discard(marker)
        if isinstance(value, Mapping):
            marker = self._enter(value, active)
            try:
                encoded: dict[str, AttributeWire] = {}
                for key, element in value.items():
                    if not isinstance(key, str):
                        raise CodecError(
                            CodecFailure.UNSUPPORTED_TYPE,
                            f"map keys must be strings, got {type(key).__name__}",
                        )
                    encoded[key] = self._encode(element, active)
                return {TAG_MAP: encoded}
            finally:
                active.discard(marker)
        raise CodecError(CodecFailure.UNSUPPORTED_TYPE, f"unsupported value type: {type(value).__name__}")

    @staticmethod
    def _enter(container: Any, active: set[int]) -> int:
        marker = id(container)
        if marker in active:
            raise CodecError(CodecFailure.UNSUPPORTED_TYPE, "cyclic reference detected")
        active.add(marker)
        return marker

    def _decode(self, wire: Any) -> DynamicValue:
        if not isinstance(wire, Mapping) or len(wire) != 1:
            raise CodecError(CodecFailure.MALFORMED_WIRE, "attribute must be a mapping with exactly one type tag")
        tag, payload = next(iter(wire.items()))
        if tag not in KNOWN_TAGS:
            raise CodecError(CodecFailure.MALFORMED_WIRE, f"unknown type tag: {tag!r}")

        if tag == TAG_NULL:
            if payload is not True:
                raise CodecError(CodecFailure.MALFORMED_WIRE, "NULL attribute must carry true")
            return None
        if tag == TAG_STRING:
            if not isinstance(payload, str):
                raise CodecError(CodecFailure.MALFORMED_WIRE, "S attribute must carry a string")
            return payload
        if tag == TAG_BOOL:
            if not isinstance(payload, bool):
                raise CodecError(CodecFailure.MALFORMED_WIRE, "BOOL attribute must carry a boolean")
            return payload
        if tag == TAG_NUMBER:
            return self._parse_number(payload)
        if tag == TAG_LIST:
            if not isinstance(payload, list):
                raise CodecError(CodecFailure.MALFORMED_WIRE, "L attribute must carry a list")
            return [self._decode(element) for element in payload]

        if not isinstance(payload, Mapping):
            raise CodecError(CodecFailure.MALFORMED_WIRE, "M attribute must carry a mapping")
        decoded: dict[str, DynamicValue] = {}
        for key, element in payload.items():
            if not isinstance(key, str):
                raise CodecError(CodecFailure.MALFORMED_WIRE, "M attribute keys must be strings")
            decoded[key] = self._decode(element)
        return decoded

    def _parse_number(self, payload: Any) -> int | float | Decimal:
        if not isinstance(payload, str) or not payload.strip():
            raise CodecError(CodecFailure.MALFORMED_WIRE, "N attribute must carry a numeric string")
        text = payload.strip()
        if _INTEGER_PATTERN.match(text):
            try:
                return int(text)
            except ValueError as exc:
                raise CodecError(CodecFailure.MALFORMED_WIRE, f"integer string too long: {len(text)} digits") from exc
        try:
            number = Decimal(text)
        except InvalidOperation as exc:
            raise CodecError(CodecFailure.MALFORMED_WIRE, f"invalid numeric string: {payload!r}") from exc
        if not number.is_finite():
            raise CodecError(CodecFailure.MALFORMED_WIRE, f"non-finite numeric string: {payload!r}")
        if self._use_decimal:
            return number
        value = float(text)
        if not math.isfinite(value):
            raise CodecError(CodecFailure.MALFORMED_WIRE, f"number out of float range: {payload!r}")
        return value


def _format_number(value: int | float | Decimal) -> str:
    if isinstance(value, int):
        try:
            return str(value)
        except ValueError as exc:
            raise CodecError(CodecFailure.UNSUPPORTED_TYPE, "integer too large to encode") from exc
    if isinstance(value, float):
        if not math.isfinite(value):
            raise CodecError(CodecFailure.UNSUPPORTED_TYPE, f"non-finite number: {value!r}")
        return repr(value)
    if not value.is_finite():
        raise CodecError(CodecFailure.UNSUPPORTED_TYPE, f"non-finite number: {value}")
    return str(value)


_default_codec = AttributeCodec()


def encode(value: DynamicValue) -> AttributeWire:
    """Encode with the default (float-decoding) codec."""
    return _default_codec.encode(value)


def decode(wire: AttributeWire) -> DynamicValue:
    """Decode with the default (float-decoding) codec."""
    return _default_codec.decode(wire)
