"""Run the read-count worker outside the web process."""
from __future__ import annotations

import argparse
import asyncio
import logging
import signal

from storybook_rank.services.task_queue import ReadCountWorker

logger = logging.getLogger("storybook_rank.read_worker")


async def _run_forever(worker: ReadCountWorker) -> None:
    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, stop.set)

    await worker.start()
    logger.info("Read-count worker started")
    await stop.wait()
    await worker.stop()
    logger.info("Read-count worker stopped")


def main() -> None:
    parser = argparse.ArgumentParser(description="Apply queued read-count increments")
    parser.add_argument(
        "--once",
        action="store_true",
        help="Drain one batch of due tasks and exit.",
    )
    parser.add_argument("--log-level", default="INFO", help="Logging level (default: INFO)")
    args = parser.parse_args()

    logging.basicConfig(
        level=args.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    worker = ReadCountWorker()
    if args.once:
        processed = worker.drain_once()
        print(f"[read_worker] processed {processed} task(s)")
        return

    asyncio.run(_run_forever(worker))


if __name__ == "__main__":
    main()
