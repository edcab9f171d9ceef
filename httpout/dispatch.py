"""
Sends built requests and classifies what came back.

Outcomes are returned, never raised. Deciding which outcomes become errors
for the caller is left to the adapter.
"""

import logging
import time
from collections import Counter
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

import httpx

from httpout.config.main import OutputConfig
from httpout.config.tls import TLSConfig, get_tls_config
from httpout.errors import TransportError
from httpout.rate_limit import RateLimiter
from httpout.request import RequestDescriptor

LOG = logging.getLogger(__name__)

NO_RESPONSE_SUMMARY = "res=nil"


class OutcomeKind(Enum):
    SUCCESS = "success"
    RATE_LIMITED = "rate_limited"
    RECOVERABLE_FAILURE = "recoverable_failure"
    FATAL_FAILURE = "fatal_failure"
    UNCLASSIFIED_FAILURE = "unclassified_failure"


@dataclass(frozen=True)
class Outcome:
    """
    Result of one send.

    RATE_LIMITED means no request was made. ``error`` is set for, and only for,
    FATAL_FAILURE, ``summary`` for every failure kind.
    """

    kind: OutcomeKind
    summary: Optional[str] = None
    status_code: Optional[int] = None
    error: Optional[Exception] = None

    def __post_init__(self):
        if self.kind is OutcomeKind.FATAL_FAILURE and self.error is None:
            raise ValueError("A fatal outcome needs the error that caused it")

    @property
    def ok(self) -> bool:
        return self.kind in (OutcomeKind.SUCCESS, OutcomeKind.RATE_LIMITED)


def summarize_response(response: Optional[httpx.Response]) -> str:
    if response is None:
        return NO_RESPONSE_SUMMARY
    return f"{response.status_code} {response.reason_phrase} {response.text}"


class Dispatcher:
    """
    Performs requests against the configured endpoint.

    One dispatcher holds one HTTP client and one rate limiter, shared by every
    send made through it.
    """

    def __init__(
        self,
        config: OutputConfig,
        tls_config: Optional[TLSConfig] = None,
        rate_limiter: Optional[RateLimiter] = None,
        clock: Callable[[], float] = time.time,
        logger: Optional[logging.Logger] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.config = config
        self.logger = logger or LOG
        self.rate_limiter = rate_limiter or RateLimiter(config.rate_limit_msec)
        self.stats: Counter = Counter()
        self._clock = clock
        self._transport = transport

        self._tls_config = tls_config or get_tls_config(
            ssl_no_verify=config.ssl_no_verify
        )

        self._http_client = self._create_http_client()

    def _create_http_client(self) -> httpx.Client:
        """
        Create HTTP client with current configuration.
        """
        client_kwargs = {
            "verify": self._tls_config.verify,
            "timeout": httpx.Timeout(self.config.timeout),
        }

        if self._transport is not None:
            client_kwargs["transport"] = self._transport

        return httpx.Client(**client_kwargs)

    @property
    def tls_config(self) -> TLSConfig:
        return self._tls_config

    def close(self) -> None:
        self._http_client.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()

    def _record(self, outcome: Outcome) -> Outcome:
        self.stats[outcome.kind] += 1
        return outcome

    def _perform(self, request: RequestDescriptor) -> Optional[httpx.Response]:
        auth = httpx.BasicAuth(*request.auth) if request.auth else None

        return self._http_client.request(
            request.method,
            request.url,
            content=request.body,
            headers=dict(request.headers),
            auth=auth,
        )

    def send(self, request: RequestDescriptor) -> Outcome:
        """
        Send a request, unless the rate limiter drops it.

        Args:
            request (RequestDescriptor): The request to send.

        Returns:
            Outcome: The classified result.
        """
        if not self.rate_limiter.try_acquire(self._clock()):
            self.logger.info("Dropped request due to rate limiting")
            return self._record(Outcome(OutcomeKind.RATE_LIMITED))

        try:
            response = self._perform(request)
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            self.logger.warning(
                f"HTTP {request.method} raised exception: {e.__class__.__name__}, '{e}'"
            )
            error = TransportError(e, method=request.method, url=request.url)
            error.__cause__ = e
            return self._record(
                Outcome(OutcomeKind.FATAL_FAILURE, summary=str(e), error=error)
            )

        return self._record(self.classify(request, response))

    def classify(
        self, request: RequestDescriptor, response: Optional[httpx.Response]
    ) -> Outcome:
        """
        Classify a completed response.

        A status in the recoverable set wins over the generic failure path.
        """
        if response is not None and response.is_success:
            return Outcome(OutcomeKind.SUCCESS, status_code=response.status_code)

        summary = summarize_response(response)
        status_code = response.status_code if response is not None else None

        if status_code in self.config.recoverable_status_codes:
            return Outcome(
                OutcomeKind.RECOVERABLE_FAILURE,
                summary=summary,
                status_code=status_code,
            )

        self.logger.warning(f"failed to {request.method} {request.url} ({summary})")
        return Outcome(
            OutcomeKind.UNCLASSIFIED_FAILURE, summary=summary, status_code=status_code
        )
