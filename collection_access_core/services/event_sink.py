"""
Audit/analytics event sinks.

The access layer reports what happened (collection viewed, rate limited,
account linked, ...) to an external sink. Emission is best effort:
``emit_event`` is the failure boundary and never raises into the caller.
"""

from abc import ABC, abstractmethod
from typing import Optional

from azure.core.exceptions import ResourceNotFoundError
from azure.storage.queue import QueueClient

from ..config import AppConfig, get_config
from ..schemas.event_schemas import CollectionEvent
from ..utils.logger import get_logger


class EventSink(ABC):
    @abstractmethod
    def send(self, event: CollectionEvent) -> None:
        """Deliver one event; may raise."""


class NullEventSink(EventSink):
    def send(self, event: CollectionEvent) -> None:
        return None


class LoggingEventSink(EventSink):
    """Writes events to the application log."""

    def __init__(self):
        self.logger = get_logger()

    def send(self, event: CollectionEvent) -> None:
        self.logger.info(
            f"EVENT: {event.event_type.value}",
            extra={
                "event_type": event.event_type.value,
                "user_id": event.user_id,
                "timestamp": event.timestamp.isoformat(),
                "attributes": event.attributes,
            },
        )


class QueueEventSink(EventSink):
    """
    Sends events as JSON messages to an Azure Storage Queue.

    The queue is created on the first send that finds it missing.
    """

    def __init__(
        self,
        connection_string: Optional[str] = None,
        queue_name: Optional[str] = None,
        queue_client: Optional[QueueClient] = None,
    ):
        events_config = get_config().events
        self.queue_name = queue_name or events_config.queue_name
        self.logger = get_logger()

        if queue_client is not None:
            self.queue_client = queue_client
        else:
            self.queue_client = QueueClient.from_connection_string(
                conn_str=connection_string or events_config.queue_connection_string,
                queue_name=self.queue_name,
            )

    def send(self, event: CollectionEvent) -> None:
        message = event.model_dump_json()
        try:
            self.queue_client.send_message(message)
        except ResourceNotFoundError:
            self.logger.debug(f"Queue {self.queue_name} not found, creating it...")
            self.queue_client.create_queue()
            self.queue_client.send_message(message)


def emit_event(sink: Optional[EventSink], event: CollectionEvent) -> bool:
    """
    Deliver ``event`` to ``sink`` without ever failing the caller.

    Returns:
        True if the sink accepted the event
    """
    if sink is None:
        return False
    try:
        sink.send(event)
        return True
    except Exception as e:
        get_logger().warning(
            f"Failed to emit event {event.event_type.value}: {str(e)}",
            extra={"event_type": event.event_type.value, "error_type": type(e).__name__},
        )
        return False


def build_event_sink(config: Optional[AppConfig] = None) -> EventSink:
    """Queue sink when a storage connection is configured, log sink otherwise."""
    config = config or get_config()
    if config.events.queue_connection_string:
        return QueueEventSink(
            connection_string=config.events.queue_connection_string,
            queue_name=config.events.queue_name,
        )
    return LoggingEventSink()
