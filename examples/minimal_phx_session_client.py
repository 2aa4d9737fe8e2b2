#!/usr/bin/env python3
"""
Minimal Phoenix session client.

Connects to a Phoenix socket, joins a channel, publishes one event and logs
everything the server sends back until Ctrl+C.

Usage:
    python examples/minimal_phx_session_client.py

Settings are read from the environment or a .env file:
    PHX_WS_URL - base socket URL, e.g. ws://localhost:4000/socket
    PHX_PARAMS - connection params, e.g. token=abc123
    LOG_LEVEL  - DEBUG, INFO, WARNING, ERROR or CRITICAL (defaults to INFO)
"""
import asyncio
import logging

from phoenix_session_client import ClientSettings, JsonMessage, PHXChannelsClient, setup_logging

CHANNEL = "room:lobby"

settings = ClientSettings.from_env()
setup_logging(settings.log_level)

logger = logging.getLogger(__name__)


async def log_messages(client: PHXChannelsClient):
    async for message in client.receiver:
        if isinstance(message, JsonMessage):
            logger.info(f"Received: {message.phx_message}")
        else:
            logger.info(f"Received {type(message).__name__}")


async def main():
    """Main client function."""
    try:
        async with PHXChannelsClient(**settings.client_kwargs()) as client:
            reader = asyncio.create_task(log_messages(client))

            join_ref = await client.join(CHANNEL)
            logger.info(f"Joined {CHANNEL} with join_ref {join_ref}")
            await client.send(CHANNEL, "new_msg", {"body": "hello"})

            logger.info("Ready - Press Ctrl+C to stop")
            await client.run_forever()
            reader.cancel()

    except Exception as e:
        logger.error(f"Connection failed: {e}")
        raise


if __name__ == "__main__":
    """Run the minimal client."""
    asyncio.run(main())
