"""Entry point for the synthetic log generator."""

import asyncio
import logging
import os
import signal
import sys

from loggen.config import SINK_FILE, ConfigError, load_config
from loggen.scheduler import Scheduler

try:
    import uvloop
    asyncio.set_event_loop_policy(uvloop.EventLoopPolicy())
except ImportError:
    pass

logger = logging.getLogger(__name__)


def _log_banner(config) -> None:
    logger.info("Starting log generator...")
    if config.sink_mode == SINK_FILE:
        logger.info("Log file: %s", config.log_file)
        logger.info("Format: %s", config.log_format)
        logger.info("Max file size: %d bytes", config.max_file_size)
    else:
        logger.info("Push URL: %s", config.push_url)
        logger.info("Static labels: %s", config.push_labels)
    logger.info(
        "Base log interval: %.1f seconds (randomized ±2 seconds, minimum 1 second)",
        config.log_interval_ms / 1000,
    )


async def run(config) -> None:
    scheduler = Scheduler(config)

    def handle_signal(signum):
        logger.info("Received %s. Stopping log generator...", signal.Signals(signum).name)
        scheduler.stop()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, handle_signal, sig)

    scheduler.start()
    await scheduler.wait()
    logger.info(
        "Generator finished: delivered=%d, failed=%d",
        scheduler.delivered,
        scheduler.failed,
    )


def main() -> None:
    logging.basicConfig(
        level=os.environ.get("LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    try:
        config = load_config()
    except ConfigError as exc:
        logger.error("Invalid configuration: %s", exc)
        sys.exit(1)

    _log_banner(config)
    asyncio.run(run(config))


if __name__ == "__main__":
    main()
