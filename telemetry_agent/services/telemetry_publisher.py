import json
import logging

from telemetry_agent.core.exceptions import PublishError
from telemetry_agent.models import Record, TelemetryMessage
from .telemetry_sink import TelemetrySink


def serialize_message(message: TelemetryMessage) -> bytes:
    """JSON body of the record only; cells stay strings, non-ASCII kept as-is."""
    return json.dumps(message.body, ensure_ascii=False).encode(message.content_encoding)


class TelemetryPublisher:
    """
    Sends records to the sink one at a time.

    `send` returns only after the sink has accepted the message, so awaiting
    it row by row preserves file order. Failures are raised as PublishError
    and are never retried here.
    """

    def __init__(self, sink: TelemetrySink):
        self._sink = sink
        self.messages_sent = 0

    @staticmethod
    def build_message(record: Record, source_file: str, row_number: int) -> TelemetryMessage:
        return TelemetryMessage(body=record, source_file=source_file, row_number=row_number)

    async def send(self, message: TelemetryMessage) -> None:
        payload = serialize_message(message)
        properties = message.properties()
        properties["content-type"] = message.content_type

        try:
            await self._sink.send(payload, properties)
        except PublishError:
            raise
        except Exception as e:
            raise PublishError(f"Sink failed: {e}") from e

        self.messages_sent += 1
        logging.debug(
            f"Sent row {message.row_number} of {message.source_file}: "
            f"{payload.decode(message.content_encoding)}"
        )
