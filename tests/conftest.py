import asyncio
import json
from http import HTTPStatus
from typing import AsyncGenerator

import pytest_asyncio
from websockets.asyncio.server import serve
from websockets.exceptions import ConnectionClosed


class FakePhoenixServer:
    def __init__(self, host="localhost", port=8765):
        self.host = host
        self.port = port
        self.server = None
        self.client_websocket = None
        self.valid_topics = {
            "test-topic",
            "test-topic-b",
        }
        self.reject_handshake = False
        self.request_path = None
        # Every frame received from the client, decoded, in arrival order
        self.received = []
        self.heartbeat_received = asyncio.Event()
        self.client_connected = asyncio.Event()

    def is_valid_topic(self, topic):
        """Check if a topic is valid for subscription"""
        return topic in self.valid_topics

    def process_request(self, connection, request):
        """Record the request path and optionally refuse the handshake"""
        self.request_path = request.path
        if self.reject_handshake:
            return connection.respond(HTTPStatus.FORBIDDEN, "Forbidden\n")
        return None

    async def handler(self, websocket):
        """Handle WebSocket connections and messages"""
        self.client_websocket = websocket
        self.client_connected.set()
        try:
            async for message in websocket:
                data = json.loads(message)
                self.received.append(data)
                await self.handle_message(data)
        except ConnectionClosed:
            pass
        finally:
            self.client_websocket = None

    async def handle_message(self, data):
        """Handle incoming v2 protocol messages (array format: [join_ref, msg_ref, topic, event, payload])"""
        if not isinstance(data, list) or len(data) != 5:
            return  # Invalid v2 message format

        join_ref, msg_ref, topic, event, payload = data

        if event == "phx_join":
            if self.is_valid_topic(topic):
                reply = [join_ref, msg_ref, topic, "phx_reply", {"status": "ok", "response": {}}]
            else:
                reply = [join_ref, msg_ref, topic, "phx_reply", {"status": "error", "response": {"reason": "unmatched topic"}}]
            await self.client_websocket.send(json.dumps(reply))
        elif event == "heartbeat" and topic == "phoenix":
            self.heartbeat_received.set()
            reply = [None, msg_ref, "phoenix", "phx_reply", {"status": "ok", "response": {}}]
            await self.client_websocket.send(json.dumps(reply))

    async def wait_for_messages(self, count, timeout=2.0):
        """Wait until at least ``count`` frames have been received from the client"""
        async def _wait():
            while len(self.received) < count:
                await asyncio.sleep(0.01)

        await asyncio.wait_for(_wait(), timeout)
        return self.received[:count]

    async def simulate_server_event(self, topic, event, payload, join_ref=None):
        """Simulate a server event being sent to the client for testing purposes"""
        await self.client_connected.wait()
        message = [join_ref, None, topic, event, payload]
        await self.client_websocket.send(json.dumps(message))

    async def send_raw(self, data):
        """Send a text (str) or binary (bytes) frame as-is"""
        await self.client_connected.wait()
        await self.client_websocket.send(data)

    async def close_client(self, code=1000, reason=""):
        """Close the client connection with a close frame carrying ``code``"""
        await self.client_connected.wait()
        await self.client_websocket.close(code=code, reason=reason)

    async def start(self):
        """Start the fake Phoenix server"""
        self.server = await serve(self.handler, self.host, self.port, process_request=self.process_request)

    async def stop(self):
        """Stop the fake Phoenix server"""
        if self.server:
            self.server.close()
            await self.server.wait_closed()
        self.client_websocket = None

    @property
    def url(self):
        return f"ws://{self.host}:{self.port}/socket"


class RecordingWriter:
    """Transport writer that keeps every frame instead of sending it"""

    def __init__(self, error=None):
        self.written = []
        self.error = error

    def start(self):
        pass

    async def write(self, text):
        if self.error is not None:
            raise self.error
        self.written.append(text)

    async def close(self):
        pass

    @property
    def envelopes(self):
        return [json.loads(text) for text in self.written]


class FakeInboundConnection:
    """Stands in for a websocket connection that yields ``frames`` and then ends"""

    def __init__(self, frames, error=None, hang=False):
        self.frames = list(frames)
        self.error = error
        self.hang = hang

    def __aiter__(self):
        return self._iterate()

    async def _iterate(self):
        for frame in self.frames:
            yield frame
        if self.hang:
            await asyncio.Event().wait()
        if self.error is not None:
            raise self.error


class FakeOutboundConnection:
    """Stands in for a websocket connection and records sent frames"""

    def __init__(self):
        self.sent = []
        self.error = None
        self.gate = None

    async def send(self, text):
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        self.sent.append(text)


@pytest_asyncio.fixture
async def phoenix_server() -> AsyncGenerator[FakePhoenixServer, None]:
    """Fixture that provides a fake Phoenix WebSocket server (v2 protocol)"""
    server = FakePhoenixServer()
    await server.start()
    try:
        yield server
    finally:
        await server.stop()
