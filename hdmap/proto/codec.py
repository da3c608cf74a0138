from __future__ import annotations

import base64
import json
import logging
from typing import Any, Dict, Optional, Protocol

from google.protobuf import json_format
from google.protobuf.descriptor import FieldDescriptor

from hdmap.proto.loader import get_graph_type, get_map_type

LOG = logging.getLogger("proto_codec")


class MapCodec(Protocol):
    def encode(self, obj: Dict[str, Any]) -> bytes: ...

    def decode(self, data: bytes) -> Dict[str, Any]: ...


def _is_repeated(field) -> bool:
    # label is gone on newer runtimes, is_repeated is missing on older ones
    flag = getattr(field, "is_repeated", None)
    if flag is not None:
        return bool(flag)
    return field.label == FieldDescriptor.LABEL_REPEATED


def _walk_bytes(descriptor, obj: Any, convert) -> Any:
    """Apply ``convert`` to every ``bytes`` field of a protobuf-JSON dict, in place."""
    if not isinstance(obj, dict):
        return obj
    for field in descriptor.fields:
        key = field.json_name if field.json_name in obj else field.name
        if key not in obj:
            continue
        value = obj[key]
        repeated = _is_repeated(field)
        if field.type == FieldDescriptor.TYPE_BYTES:
            obj[key] = [convert(v) for v in value] if repeated else convert(value)
        elif field.type == FieldDescriptor.TYPE_MESSAGE:
            items = value if repeated else [value]
            for item in items:
                _walk_bytes(field.message_type, item, convert)
    return obj


def _fields_by_key(descriptor) -> Dict[str, Any]:
    out = {f.name: f for f in descriptor.fields}
    out.update({f.json_name: f for f in descriptor.fields})
    return out


def _parse_lenient(payload: Dict[str, Any], msg, path: str) -> None:
    """Parse field by field, dropping whatever the schema rejects."""
    fields = _fields_by_key(msg.DESCRIPTOR)
    for key, value in payload.items():
        field = fields.get(key)
        if field is None:
            LOG.warning("proto field dropped (%s.%s): unknown field", path, key)
            continue
        try:
            json_format.ParseDict({key: value}, msg, ignore_unknown_fields=True)
            continue
        except json_format.ParseError as exc:
            reason = exc
        msg.ClearField(field.name)

        nested = field.type == FieldDescriptor.TYPE_MESSAGE and not field.message_type.GetOptions().map_entry
        repeated = _is_repeated(field)
        items = value if repeated else [value]
        if not nested or not isinstance(items, list):
            LOG.warning("proto field dropped (%s.%s): %s", path, key, reason)
            continue
        for i, item in enumerate(items):
            if not isinstance(item, dict):
                LOG.warning("proto field dropped (%s.%s[%d]): not an object", path, key, i)
                continue
            sub = getattr(msg, field.name).add() if repeated else getattr(msg, field.name)
            _parse_lenient(item, sub, f"{path}.{key}[{i}]" if repeated else f"{path}.{key}")


def _text_to_b64(value: Any) -> str:
    raw = value if isinstance(value, (bytes, bytearray)) else str(value).encode("utf-8")
    return base64.b64encode(raw).decode("ascii")


def _b64_to_text(value: Any) -> str:
    raw = base64.b64decode(value)
    return raw.decode("utf-8", errors="replace")


class ProtoCodec:
    """Binary protobuf through a compiled message class and ``json_format``."""

    def __init__(self, message_cls) -> None:
        self.message_cls = message_cls
        self.name = message_cls.DESCRIPTOR.full_name

    def encode(self, obj: Dict[str, Any]) -> bytes:
        payload = _walk_bytes(self.message_cls.DESCRIPTOR, json.loads(json.dumps(obj)), _text_to_b64)
        msg = self.message_cls()
        try:
            json_format.ParseDict(payload, msg)
        except json_format.ParseError as exc:
            LOG.warning("proto verify warning (%s): %s", self.name, exc)
            msg = self.message_cls()
            _parse_lenient(payload, msg, self.name)
        return msg.SerializeToString()

    def decode(self, data: bytes) -> Dict[str, Any]:
        msg = self.message_cls()
        msg.ParseFromString(bytes(data))
        obj = json_format.MessageToDict(msg, use_integers_for_enums=True)
        return _walk_bytes(self.message_cls.DESCRIPTOR, obj, _b64_to_text)


class JsonCodec:
    """Protobuf-JSON text, used for the mirrors and for setups without compiled protos."""

    def __init__(self, indent: Optional[int] = None) -> None:
        self.indent = indent

    def encode(self, obj: Dict[str, Any]) -> bytes:
        return json.dumps(obj, ensure_ascii=False, indent=self.indent).encode("utf-8")

    def decode(self, data: bytes) -> Dict[str, Any]:
        return json.loads(bytes(data).decode("utf-8"))


def map_codec(kind: str = "proto", module_path: Optional[str] = None) -> MapCodec:
    if kind == "json":
        return JsonCodec()
    return ProtoCodec(get_map_type(module_path) if module_path else get_map_type())


def graph_codec(kind: str = "proto", module_path: Optional[str] = None) -> MapCodec:
    if kind == "json":
        return JsonCodec()
    return ProtoCodec(get_graph_type(module_path) if module_path else get_graph_type())


__all__ = ["JsonCodec", "MapCodec", "ProtoCodec", "graph_codec", "map_codec"]
