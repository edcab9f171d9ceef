import logging
import time
from collections.abc import Mapping
from typing import Any, Callable, Iterable, List, Optional, Tuple

import httpx

from httpout.config.main import OutputConfig
from httpout.config.tls import TLSConfig
from httpout.dispatch import Dispatcher, Outcome, OutcomeKind
from httpout.errors import RecoverableResponseError
from httpout.request import RequestBuilder

LOG = logging.getLogger(__name__)


class HTTPOutput:
    """
    Delivers records handed over by a host pipeline.

    In bulk mode every call becomes a single NDJSON request. Otherwise each
    record is sent on its own, in order. Recoverable responses always raise
    RecoverableResponseError so the host can re-deliver; transport failures
    raise only when raise_on_error is set. Rate limited and other failed
    sends are reported through the returned outcomes only.
    """

    def __init__(
        self,
        config: OutputConfig,
        tls_config: Optional[TLSConfig] = None,
        clock: Callable[[], float] = time.time,
        logger: Optional[logging.Logger] = None,
        transport: Optional[httpx.BaseTransport] = None,
        request_builder: Optional[RequestBuilder] = None,
    ):
        self.config = config
        self.logger = logger or LOG
        self._clock = clock
        self.request_builder = request_builder or RequestBuilder(config)
        self.dispatcher = Dispatcher(
            config,
            tls_config=tls_config,
            clock=clock,
            logger=self.logger,
            transport=transport,
        )

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()

    def close(self) -> None:
        self.dispatcher.close()

    @property
    def stats(self):
        return self.dispatcher.stats

    def deliver(self, tag: str, time: Any, payload: Any) -> List[Outcome]:
        """
        Deliver one record or a batch of (time, record) pairs.

        Args:
            tag (str): The event tag.
            time (Any): Timestamp of a single record, ignored for batches.
            payload (Any): A record mapping or an iterable of (time, record).

        Returns:
            List[Outcome]: One outcome per request made, in order.

        Raises:
            ConfigurationError: If a request cannot be built.
            RecoverableResponseError: If the server answered with a
                recoverable status code.
            TransportError: If the request failed on the wire and
                raise_on_error is set.
        """
        batch = self._as_batch(time, payload)

        if self.config.bulk_request:
            return [self.handle_records(tag, int(self._clock()), batch)]

        return [self.handle_record(tag, t, record) for t, record in batch]

    def _as_batch(self, time: Any, payload: Any) -> List[Tuple[Any, Any]]:
        if isinstance(payload, Mapping):
            return [(time, payload)]
        return list(payload)

    def handle_record(self, tag: str, time: Any, record: Any) -> Outcome:
        request = self.request_builder.build(tag, time, record)
        return self._raise_for_outcome(self.dispatcher.send(request))

    def handle_records(
        self, tag: str, time: int, batch: Iterable[Tuple[Any, Any]]
    ) -> Outcome:
        request = self.request_builder.build(tag, time, batch)
        return self._raise_for_outcome(self.dispatcher.send(request))

    def _raise_for_outcome(self, outcome: Outcome) -> Outcome:
        if outcome.kind is OutcomeKind.RECOVERABLE_FAILURE:
            raise RecoverableResponseError(
                outcome.summary or "", status_code=outcome.status_code
            )

        if (
            outcome.kind is OutcomeKind.FATAL_FAILURE
            and self.config.raise_on_error
            and outcome.error is not None
        ):
            raise outcome.error

        return outcome
