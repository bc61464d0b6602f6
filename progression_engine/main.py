"""Command-line entry point for the progression engine"""
import argparse
import asyncio
import json
import logging
from pathlib import Path
from typing import Optional, Sequence

from progression_engine.config import LOG_LEVEL, validate_config
from progression_engine.services.progression_engine import ProgressionEngine
from progression_engine.storage.profile_store import JsonFileProfileStore

# Configure logging
logging.basicConfig(
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    level=getattr(logging, LOG_LEVEL.upper(), logging.INFO)
)

logger = logging.getLogger(__name__)


async def run(action: str, profile_path: Optional[Path] = None) -> dict:
    """
    Load the stored profile, run the daily streak check and perform an action

    Args:
        action: "status", "export" or "reset"
        profile_path: Profile file (defaults to DATA_PATH/PROFILE_FILENAME)

    Returns:
        JSON-compatible result to print
    """
    engine = ProgressionEngine(store=JsonFileProfileStore(profile_path))
    await engine.initialize()

    if action == "reset":
        engine.reset_profile()
    elif action == "export":
        await engine.flush()
        return engine.export_profile()

    await engine.flush()
    info = engine.get_debug_info()
    info["level_progress"] = engine.get_level_progress()
    return info


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Inspect the local progression profile")
    parser.add_argument(
        "action",
        nargs="?",
        default="status",
        choices=["status", "export", "reset"],
        help="Action to perform (default: status)",
    )
    parser.add_argument("--profile", type=Path, help="Profile JSON file (default: DATA_PATH/PROFILE_FILENAME)")
    args = parser.parse_args(argv)

    try:
        validate_config()
        result = asyncio.run(run(args.action, args.profile))
    except KeyboardInterrupt:
        logger.info("Interrupted")
        return 130
    except Exception as e:
        logger.error(f"Fatal error: {e}", exc_info=True)
        return 1

    print(json.dumps(result, ensure_ascii=False, indent=2))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
