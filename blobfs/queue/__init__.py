"""
Queue module.
Contains the queue broker interface and its SQS and in-memory implementations.
"""

from blobfs.queue.base import QueueBroker
from blobfs.queue.memory import InMemoryFifoBroker
from blobfs.queue.sqs import SqsQueueBroker

__all__ = [
    "QueueBroker",
    "InMemoryFifoBroker",
    "SqsQueueBroker",
]
