"""Request bodies.

A body describes *what* to send; :meth:`encode` turns it into the keyword
arguments ``httpx.AsyncClient.build_request`` understands. Encoding happens
entirely in memory so that any failure surfaces as :class:`EncodingError`
before a request object exists.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, BinaryIO

from pydantic import BaseModel

from .errors import EncodingError

JSON_MEDIA_TYPE = "application/json"


def _read_all(stream: BinaryIO | bytes) -> bytes:
    if isinstance(stream, (bytes, bytearray, memoryview)):
        return bytes(stream)
    try:
        data = stream.read()
    except (OSError, ValueError) as exc:
        raise EncodingError(f"failed reading request body: {exc}") from exc
    if not isinstance(data, bytes):
        raise EncodingError("request body stream must be opened in binary mode")
    return data


def _json_default(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return dump_model(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def dump_model(model: BaseModel) -> dict[str, Any]:
    """Dump a model with optional/absent semantics: unset and ``None`` fields are dropped."""
    return model.model_dump(mode="json", by_alias=True, exclude_unset=True, exclude_none=True)


@dataclass(frozen=True, slots=True)
class RawBody:
    """Pre-serialized or binary payload with an explicit content type."""

    content: bytes | BinaryIO
    content_type: str

    def encode(self) -> dict[str, Any]:
        return {
            "content": _read_all(self.content),
            "headers": {"Content-Type": self.content_type},
        }


@dataclass(frozen=True, slots=True)
class JsonBody:
    """Structured payload serialized as compact JSON."""

    value: Any

    def encode(self) -> dict[str, Any]:
        try:
            value = dump_model(self.value) if isinstance(self.value, BaseModel) else self.value
            payload = json.dumps(
                value, separators=(",", ":"), allow_nan=False, default=_json_default
            )
        except (TypeError, ValueError) as exc:
            raise EncodingError(f"failed encoding JSON body: {exc}") from exc
        return {
            "content": payload.encode("utf-8"),
            "headers": {"Content-Type": JSON_MEDIA_TYPE},
        }


@dataclass(frozen=True, slots=True)
class MultipartBody:
    """Single-part multipart form upload.

    The stream is read to EOF and closed while encoding, whether or not the
    read succeeds.
    """

    field: str
    stream: BinaryIO
    filename: str | None = None
    content_type: str | None = None

    def resolve_filename(self) -> str:
        if self.filename:
            return self.filename
        name = getattr(self.stream, "name", None)
        if isinstance(name, str) and name:
            return os.path.basename(name)
        raise EncodingError(f"no filename given for multipart field {self.field!r}")

    def encode(self) -> dict[str, Any]:
        try:
            filename = self.resolve_filename()
            data = _read_all(self.stream)
        finally:
            self.stream.close()

        file_field: tuple[Any, ...] = (filename, data)
        if self.content_type:
            file_field = (filename, data, self.content_type)
        return {"files": {self.field: file_field}}


Body = RawBody | JsonBody | MultipartBody
