"""
Main entry point for the Spread Monitor application.

Watches the price spread between a centralized exchange ticker feed and
on-chain order books, and republishes it to local WebSocket subscribers.
"""

import asyncio
import sys

from dotenv import load_dotenv
from pydantic import ValidationError

from spreadmonitor.monitor.config import load_settings
from spreadmonitor.monitor.coordinator import MonitorCoordinator
from spreadmonitor.monitor.logging_config import setup_logging

# Load environment variables
load_dotenv()


async def main() -> int:
    """
    Main entry point for the Spread Monitor application.

    ## Initialization
    1. Load settings (compiled-in defaults + environment overrides)
    2. Configure logging
    3. Resolve markets, open the client socket, start both feeds

    ## Error Handling
    - Invalid settings or an unbindable socket: exit status 1
    - Cancellation (Ctrl+C): clean shutdown
    - Finally block: always drains connections

    ## Environment Variables
    - `MONITOR_HOST` / `MONITOR_PORT`: client socket (default 0.0.0.0:3001)
    - `ORDERBOOK_API_URL`: on-chain order-book service
    - `LOG_LEVEL`: console log level (default INFO)
    """
    try:
        settings = load_settings()
    except ValidationError as e:
        setup_logging().error(f"Invalid configuration: {e}")
        return 1

    logger = setup_logging(settings.log_level)
    logger.info("=== Spread Monitor Starting ===")
    logger.info(f"Tracking: {', '.join(pair.name for pair in settings.pairs)}")

    coordinator = MonitorCoordinator(settings)
    try:
        await coordinator.run()
    except OSError as e:
        logger.error(f"Error starting spread monitor: {e}", exc_info=True)
        return 1
    except Exception as e:
        logger.error(f"Fatal error in main loop: {e}", exc_info=True)
        return 1
    finally:
        await coordinator.shutdown()
        logger.info("=== Spread Monitor Stopped ===")

    return 0


if __name__ == "__main__":
    try:
        sys.exit(asyncio.run(main()))
    except KeyboardInterrupt:
        print("✅ Shutdown completed gracefully")
