"""
Channel integration layer: codec, transport, result correlation and event dispatch.

Copyright (c) 2025 Firefly Software Solutions Inc.
Licensed under the Apache License, Version 2.0.
"""

from .channel import CallResponder, ChannelTransport
from .codec import CallEnvelope, EnvelopeCodec, EventEnvelope, ResultEnvelope, get_codec
from .correlator import SOURCE_CARD, SOURCE_WALLET, ResultCorrelator
from .dispatcher import EventDispatcher, SubscriptionHandle

__all__ = [
    "CallEnvelope",
    "CallResponder",
    "ChannelTransport",
    "EnvelopeCodec",
    "EventDispatcher",
    "EventEnvelope",
    "ResultCorrelator",
    "ResultEnvelope",
    "SOURCE_CARD",
    "SOURCE_WALLET",
    "SubscriptionHandle",
    "get_codec",
]
