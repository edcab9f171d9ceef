"""
Request body serializers.

Each serializer turns a record, or a batch of ``(time, record)`` pairs, into
a ``(body, content_type)`` tuple.
"""

import json
import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Tuple
from urllib.parse import urlencode

logger = logging.getLogger(__name__)

FORM = "form"
JSON = "json"
X_NDJSON = "x_ndjson"

FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"
JSON_CONTENT_TYPE = "application/json"
X_NDJSON_CONTENT_TYPE = "application/x-ndjson"

SERIALIZERS = (JSON, FORM)
HTTP_METHODS = ("get", "put", "post", "delete")

DEFAULT_SERIALIZER = FORM
DEFAULT_HTTP_METHOD = "post"

TIME_KEY = "time"

Record = Mapping[str, Any]
Batch = Iterable[Tuple[Any, Record]]
Body = Tuple[bytes, str]


def normalize_serializer(name: Optional[str], bulk_request: bool = False) -> str:
    """
    Resolve the serializer to use.

    Bulk requests always use the NDJSON serializer, whatever was configured.
    Unknown serializer names fall back to form encoding.

    Args:
        name (Optional[str]): The configured serializer name.
        bulk_request (bool): Whether bulk mode is enabled.

    Returns:
        str: One of 'form', 'json' or 'x_ndjson'.
    """
    if bulk_request:
        if name and name.strip().lower() != X_NDJSON:
            logger.debug(f"Bulk requests use the {X_NDJSON} serializer, ignoring {name!r}")
        return X_NDJSON

    normalized = (name or "").strip().lower()
    if normalized in SERIALIZERS:
        return normalized

    logger.debug(f"Unknown serializer {name!r}, falling back to {DEFAULT_SERIALIZER}")
    return DEFAULT_SERIALIZER


def normalize_http_method(name: Optional[str]) -> str:
    """
    Resolve the HTTP method, falling back to POST for unknown values.

    Returns:
        str: The upper-cased HTTP method.
    """
    normalized = (name or "").strip().lower()
    if normalized not in HTTP_METHODS:
        logger.debug(f"Unknown HTTP method {name!r}, falling back to {DEFAULT_HTTP_METHOD}")
        normalized = DEFAULT_HTTP_METHOD

    return normalized.upper()


def format_time(time: int) -> str:
    """
    Format an epoch timestamp as an RFC3339 UTC string.

    >>> format_time(0)
    '1970-01-01T00:00:00+00:00'
    """
    return datetime.fromtimestamp(time, tz=timezone.utc).isoformat()


def _is_integer_time(time: Any) -> bool:
    return isinstance(time, int) and not isinstance(time, bool)


def with_time(time: Any, record: Record) -> Dict[str, Any]:
    """
    Return a copy of the record with a 'time' field injected.

    The field is only added when the record has no 'time' value and the
    supplied timestamp is an integer the platform can represent. An existing
    value is never replaced.
    """
    data = dict(record)
    if data.get(TIME_KEY) is not None or not _is_integer_time(time):
        return data

    try:
        data[TIME_KEY] = format_time(time)
    except (OverflowError, OSError, ValueError) as e:
        logger.warning(f"Timestamp {time} is out of range, time not injected: {e}")

    return data


def _dump(data: Mapping[str, Any]) -> str:
    return json.dumps(data, separators=(",", ":"), ensure_ascii=False, default=str)


def _form_value(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (dict, list, tuple)):
        return _dump(value)  # type: ignore[arg-type]
    return str(value)


def serialize_form(time: Any, record: Record) -> Body:
    """
    URL-encode the record's key/value pairs.

    List values repeat the key, nested mappings are JSON-encoded. No time
    field is injected.
    """
    pairs: List[Tuple[str, str]] = []
    for key, value in record.items():
        if isinstance(value, (list, tuple)):
            pairs.extend((str(key), _form_value(item)) for item in value)
        else:
            pairs.append((str(key), _form_value(value)))

    return urlencode(pairs).encode("ascii"), FORM_CONTENT_TYPE


def serialize_json(time: Any, record: Record) -> Body:
    return _dump(with_time(time, record)).encode("utf-8"), JSON_CONTENT_TYPE


def serialize_bulk(batch: Batch) -> Body:
    """
    Encode a batch as newline-delimited JSON, one line per record.

    Each record gets its own time injection. Input order is preserved and an
    empty batch gives an empty body.
    """
    lines = [_dump(with_time(time, record)) for time, record in batch]
    return "\n".join(lines).encode("utf-8"), X_NDJSON_CONTENT_TYPE


SINGLE_RECORD_SERIALIZERS: Dict[str, Callable[[Any, Record], Body]] = {
    FORM: serialize_form,
    JSON: serialize_json,
}


def serialize(kind: str, time: Any, payload: Any) -> Body:
    """
    Serialize a record, or a batch when kind is 'x_ndjson'.

    Args:
        kind (str): A normalized serializer name.
        time (Any): The record timestamp, ignored for batches.
        payload (Any): A record, or a batch of (time, record) pairs.

    Returns:
        Body: The encoded body and its content type.
    """
    if kind == X_NDJSON:
        return serialize_bulk(payload)

    serializer = SINGLE_RECORD_SERIALIZERS.get(kind, serialize_form)
    return serializer(time, payload)
