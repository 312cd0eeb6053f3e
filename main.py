#!/usr/bin/env python3
"""
Main entry point: connects one chat client configured from the environment

Credentials are read from TMI_CLIENT_USERNAME / TMI_CLIENT_PASSWORD, channels
from TMI_CHANNELS (comma separated).
"""

import asyncio
import os
import signal
import sys

from tmichat import Capability, ChatClient, TmiError, connection_config
from tmichat.logs import logger


def _log_message(session, event):
    logger.log_event(
        "chat",
        "privmsg",
        human=f"💬 {event.user}: {event.text}",
        user=session.username,
        channel=event.channel,
    )


async def main():
    """Main function"""
    channels = [c for c in os.environ.get("TMI_CHANNELS", "").split(",") if c]
    config = connection_config(
        initial_channels=channels,
        capabilities=[Capability.TAGS, Capability.COMMANDS],
        filter_self_messages=True,
    )
    client = ChatClient(config, on_message=_log_message)

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, client.stop)
        except NotImplementedError:  # pragma: no cover - Windows
            pass

    logger.log_event("app", "start", human="🚀 Starting chat client")
    await client.connect()
    logger.log_event("app", "stop", human="🏁 Chat client stopped")


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        sys.exit(0)
    except (TmiError, ValueError) as e:
        logger.log_event("app", "fatal", level=40, human=f"💥 {e}")
        sys.exit(1)
