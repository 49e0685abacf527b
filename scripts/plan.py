"""
Day planner entry point.
Logs today's schedule, saves it as JSON and runs the reminder loop until
interrupted (Ctrl+C).
"""

import sys
import time
from pathlib import Path

# Add project root to Python path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

# Imports
from dayplanner.core.schedule_context import ScheduleContextFactory
from dayplanner.core.config_manager import Config
from dayplanner.models import SLOTS_PER_HOUR
from dayplanner.processors.slot_model import slot_to_time
from dayplanner.utils.logger import setup_logger

logger = setup_logger(__name__)


def main() -> int:
    """
    Main execution function.

    Returns:
        Exit code (0 for success, 1 for failure)
    """
    start_time = time.time()

    logger.info("=" * 60)
    logger.info("Starting Day Planner")
    logger.info("=" * 60)

    context = None
    try:
        # ---------------------------------------------------------
        # STEP 1: Build the scheduling context
        # ---------------------------------------------------------
        context = ScheduleContextFactory.create()
        today = context.today()
        time_format = Config.get_time_format()

        # ---------------------------------------------------------
        # STEP 2: Show and save today's schedule
        # ---------------------------------------------------------
        logger.info(f"Schedule for {today.isoformat()}:")
        lines = context.describe_day(today)
        if not lines:
            logger.info("  (nothing planned)")
        for line in lines:
            logger.info(f"  {line}")

        free_hour = context.find_next_available_slot(today, SLOTS_PER_HOUR)
        if free_hour is None:
            logger.info("No free hour left today")
        else:
            logger.info(f"Next free hour starts at {slot_to_time(free_hour, time_format)}")

        occupancy = context.get_schedule_for_date(today)
        if not context.processor.save_schedule(occupancy, Config.SCHEDULE_OUTPUT_FILE):
            logger.warning("Continuing without a saved schedule file")

        # ---------------------------------------------------------
        # STEP 3: Run the reminder loop
        # ---------------------------------------------------------
        context.start()
        logger.info("Reminder loop running. Press Ctrl+C to stop.")
        while True:
            time.sleep(1)

    except ValueError as e:
        logger.error("Configuration validation failed")
        logger.error(str(e))
        return 1

    except KeyboardInterrupt:
        logger.info("Stopped by user")
        return 0

    except Exception as e:
        logger.error("Unexpected fatal error", exc_info=True)
        logger.error(f"Error: {e}")
        return 1

    finally:
        if context is not None:
            context.close()
        elapsed = time.time() - start_time
        logger.info(f"Total run time: {elapsed:.2f} seconds")


if __name__ == "__main__":
    sys.exit(main())
