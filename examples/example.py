"""Example usage of TubePositionTracker."""

import logging
import sys
from pathlib import Path

# Add src to path so we can import tubetrack
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from tubetrack.position_tracker import RefreshResult, TubePositionTracker

# Set up logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

logger = logging.getLogger(__name__)


def print_positions(result: RefreshResult):
    """
    Display the vehicle positions from one refresh cycle.

    Args:
        result: Output of TubePositionTracker.refresh()
    """
    print(f"\n{'='*70}")
    print(f"Refreshed at {result.refreshed_at.strftime('%H:%M:%S')}")
    print(f"{'='*70}\n")

    for line in result.lines:
        positions = [p for p in result.positions if p.line_id == line.line_id]
        print(f"{line.line_id} ({len(line.segments)} segments): {len(positions)} trains")
        for position in positions:
            print(f"  {position.latitude:.5f}, {position.longitude:.5f} → {position.towards}")

    if result.errors:
        print("\nFAILED LINES:")
        for line_id, message in result.errors:
            print(f"  {line_id}: {message}")


def report_error(line_id: str, error: Exception):
    logger.warning(f"Line {line_id} skipped this cycle: {error}")


if __name__ == "__main__":
    # Optional argument: seconds between refreshes. Runs once without it.
    tracker = TubePositionTracker(error_sink=report_error)

    try:
        if len(sys.argv) > 1:
            tracker.poll(float(sys.argv[1]), print_positions)
        else:
            print_positions(tracker.refresh())
    except KeyboardInterrupt:
        print("\n\nGoodbye!")
    except Exception as e:
        logger.error(f"Failed to fetch data: {e}", exc_info=True)
        print(f"Error: {e}")
        sys.exit(1)
    finally:
        tracker.cleanup()
