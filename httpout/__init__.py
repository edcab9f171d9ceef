# -*- coding: utf-8 -*-
"""Deliver event records to an HTTP endpoint."""

from .adapter import HTTPOutput
from .dispatch import Dispatcher, Outcome, OutcomeKind
from .request import RequestBuilder, RequestDescriptor

__all__ = [
    "HTTPOutput",
    "Dispatcher",
    "Outcome",
    "OutcomeKind",
    "RequestBuilder",
    "RequestDescriptor",
]
