"""A single chat room that fans messages and participant lists out over pub/sub."""

from __future__ import annotations

import json
import logging
import threading
from typing import Iterable, Iterator

logger = logging.getLogger(__name__)

DEFAULT_CHANNEL = "chat_room:1"
MUTED_STATUS = 3

SENT_REPLY = '{"status": "ok", "message": "Message sent"}'
ENTERED_REPLY = '{"status": "ok", "user": "Entered"}'
EXITED_REPLY = '{"status": "ok", "message": "user exited"}'


def _dump(value) -> str:
    return json.dumps(value, ensure_ascii=False, separators=(",", ":"), sort_keys=True)


def _parse_object(body) -> dict:
    if isinstance(body, (bytes, bytearray)):
        body = body.decode("utf-8")
    try:
        parsed = json.loads(body)
    except json.JSONDecodeError as exc:
        raise ValueError(f"request body is not valid JSON: {exc}") from exc
    if not isinstance(parsed, dict):
        raise ValueError("request body must be a JSON object")
    return parsed


def _field(obj: dict, name: str, kind: type):
    if name not in obj:
        raise ValueError(f"missing field {name!r}")
    value = obj[name]
    if kind is int:
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ValueError(f"field {name!r} must be a number")
        return int(value)
    if not isinstance(value, kind):
        raise ValueError(f"field {name!r} must be a {kind.__name__}")
    return value


def _event(payload: str) -> str:
    return f"data: {payload}\n\n"


class ChatRoom:
    """Participants and messages of one room, published on ``channel``."""

    def __init__(self, publisher, channel=DEFAULT_CHANNEL):
        self.publisher = publisher
        self.channel = channel
        self._participants: list[dict] = []
        self._lock = threading.Lock()

    def participants(self):
        """A copy of the current participant list."""
        with self._lock:
            return [dict(p) for p in self._participants]

    def _broadcast_payload(self) -> str:
        return _dump({"type": "participants", "participants": self._participants})

    def talk(self, body):
        """Publish a chat message unless its sender is muted."""
        request = _parse_object(body)
        message = {
            "user_id": _field(request, "user_id", int),
            "msg_text": _field(request, "msg_text", str),
            "user_status": _field(request, "user_status", int),
            "user_name": _field(request, "user_name", str),
        }
        if message["user_status"] != MUTED_STATUS:
            self.publisher.publish(self.channel, _dump(message))
        logger.info("Published message: %s", message["msg_text"])
        return SENT_REPLY

    def join(self, body):
        """Add a participant and broadcast the new list."""
        request = _parse_object(body)
        info = {
            "user_id": _field(request, "user_id", int),
            "user_name": _field(request, "user_name", str),
        }
        with self._lock:
            self._participants.append(info)
            self.publisher.publish(self.channel, self._broadcast_payload())
        logger.info("Entered user: %s", info["user_name"])
        return ENTERED_REPLY

    def leave(self, body):
        """Remove the first participant with the given id and broadcast the list."""
        user_id = _field(_parse_object(body), "user_id", int)
        with self._lock:
            for index, participant in enumerate(self._participants):
                if participant["user_id"] == user_id:
                    del self._participants[index]
                    break
            self.publisher.publish(self.channel, self._broadcast_payload())
        return EXITED_REPLY

    def initial_event(self):
        """The server-sent event describing the current participants."""
        with self._lock:
            return _event(self._broadcast_payload())

    def event_stream(self, messages):
        """Server-sent events: the participant snapshot, then each message."""
        initial = self.initial_event()
        return self._stream(initial, messages)

    @staticmethod
    def _stream(initial: str, messages: Iterable[str]) -> Iterator[str]:
        yield initial
        for message in messages:
            yield _event(message)


def redis_messages(client, channel=DEFAULT_CHANNEL):
    """Subscribe to ``channel`` now and yield each message's text as it arrives."""
    pubsub = client.pubsub()
    pubsub.subscribe(channel)

    def listen() -> Iterator[str]:
        try:
            for item in pubsub.listen():
                if item.get("type") != "message":
                    continue
                data = item.get("data")
                if isinstance(data, (bytes, bytearray)):
                    yield bytes(data).decode("utf-8", "replace")
                else:
                    yield str(data)
        finally:
            pubsub.close()

    return listen()