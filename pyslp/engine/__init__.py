"""Engine module - request state machines and reply routing."""

from .channel import TransportChannel
from .collector import CollectedResponses, ResponseCollector
from .request import (
    Continuation,
    EngineConfig,
    OperationKind,
    RequestEngine,
    RequestState,
    ServiceEntry,
)
from .timeout_handler import TimeoutHandler

__all__ = [
    "TransportChannel",
    "CollectedResponses",
    "ResponseCollector",
    "Continuation",
    "EngineConfig",
    "OperationKind",
    "RequestEngine",
    "RequestState",
    "ServiceEntry",
    "TimeoutHandler",
]
