import json
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Tuple

import httpx

from httpout.config.main import AUTH_BASIC, OutputConfig
from httpout.errors import ConfigurationError
from httpout.meta import get_meta_http_headers
from httpout.serializers import normalize_http_method, normalize_serializer, serialize


@dataclass(frozen=True)
class RequestDescriptor:
    """
    Everything needed to perform one HTTP request.

    Built by RequestBuilder, consumed once by the Dispatcher.
    """

    method: str
    url: str
    path: str
    body: bytes
    content_type: str
    headers: Mapping[str, str] = field(default_factory=dict)
    auth: Optional[Tuple[str, str]] = field(default=None, repr=False)


def parse_custom_headers(raw: Optional[str]) -> Dict[str, str]:
    """
    Parse the custom headers setting, a JSON object of header name to value.

    Names and values must be single line ASCII, they are sent as is.

    Raises:
        ConfigurationError: If the setting is not a JSON object or holds a
            name or value that cannot be sent.
    """
    if not raw:
        return {}

    try:
        headers = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"custom_headers is not valid JSON: {e}") from e

    if not isinstance(headers, dict):
        raise ConfigurationError("custom_headers must be a JSON object")

    parsed = {str(name): str(value) for name, value in headers.items()}

    for name, value in parsed.items():
        for text in (name, value):
            if not text.isascii() or "\r" in text or "\n" in text:
                raise ConfigurationError(
                    f"custom_headers entry {name!r} is not single line ASCII"
                )

    return parsed


class RequestBuilder:
    """
    Turns a record, or a batch of records, into a RequestDescriptor.
    """

    def __init__(self, config: OutputConfig):
        self.config = config
        self.http_method = normalize_http_method(config.http_method)
        self.serializer = normalize_serializer(config.serializer, config.bulk_request)

    def format_url(self, tag: str, time: Any, payload: Any) -> str:
        """
        Target URL of a request. Subclasses may derive it from the tag or time.
        """
        return self.config.endpoint_url

    def build_headers(self, content_type: str) -> Dict[str, str]:
        headers = get_meta_http_headers()
        headers["Content-Type"] = content_type

        # header names are case-insensitive, custom values replace defaults
        for name, value in parse_custom_headers(self.config.custom_headers).items():
            for existing in [h for h in headers if h.lower() == name.lower()]:
                del headers[existing]
            headers[name] = value

        return headers

    def build_auth(self) -> Optional[Tuple[str, str]]:
        if self.config.authentication == AUTH_BASIC:
            return (self.config.username, self.config.password)
        return None

    def build(self, tag: str, time: Any, payload: Any) -> RequestDescriptor:
        """
        Build the request for a record, or for a batch in bulk mode.

        Args:
            tag (str): The event tag.
            time (Any): The record timestamp, or the batch time in bulk mode.
            payload (Any): A record, or a batch of (time, record) pairs.

        Returns:
            RequestDescriptor: The request to send.

        Raises:
            ConfigurationError: If the URL or the custom headers are invalid.
        """
        url = self.format_url(tag, time, payload)
        try:
            path = httpx.URL(url).path
        except httpx.InvalidURL as e:
            raise ConfigurationError(f"Invalid endpoint_url: {url!r}") from e

        body, content_type = serialize(self.serializer, time, payload)

        return RequestDescriptor(
            method=self.http_method,
            url=url,
            path=path,
            body=body,
            content_type=content_type,
            headers=MappingProxyType(self.build_headers(content_type)),
            auth=self.build_auth(),
        )
