from .base import Broker, BrokerMessage, ConsumerLoop, MessageHandler, Subscription, consume_forever
from .memory import InMemoryBroker

__all__ = [
    "Broker",
    "BrokerMessage",
    "ConsumerLoop",
    "InMemoryBroker",
    "MessageHandler",
    "Subscription",
    "consume_forever",
]
