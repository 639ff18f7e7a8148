"""Command line interface of therapybilling.

Usage: ``therapybilling [config.toml] [--year YYYY] [--debug]``
"""

import logging
import logging.config
import pathlib
import sys

from therapybilling.app.generate import main as therapybilling_main

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = "config.toml"


def configure_logging(debug: bool) -> None:
    """Configure logging from the first logging config found.

    A ``logging.conf`` in the working directory wins over the bundled ones.
    """
    package_dir = pathlib.Path(__file__).parent
    candidates = [pathlib.Path("logging.conf")]
    candidates.append(package_dir / ("logging-debug.conf" if debug else "logging.conf"))

    for conf_path in candidates:
        if conf_path.exists():
            logging.config.fileConfig(conf_path)
            logger.info(f"Logging configuration loaded from {conf_path}")
            return

    logging.basicConfig(level=logging.DEBUG if debug else logging.WARNING)
    logger.info("No logging configuration found, using basicConfig.")


def parse_year(args: list[str]) -> int | None:
    """Read ``--year YYYY`` or ``--year=YYYY`` from the arguments."""
    for i, arg in enumerate(args):
        if arg.startswith("--year="):
            value = arg.partition("=")[2]
        elif arg == "--year":
            value = args[i + 1] if i + 1 < len(args) else ""
        else:
            continue

        if not value.isdigit():
            raise ValueError(f"--year expects a year such as 2025, got {value!r}.")
        return int(value)
    return None


def parse_config_file(args: list[str]) -> str:
    """Return the first ``*.toml`` argument, or the default config file."""
    for arg in args:
        if arg.endswith(".toml"):
            logger.info(f"Overriding config file path: {arg}")
            return arg
    return DEFAULT_CONFIG_FILE


def main() -> None:
    """Entry point for the therapybilling application."""
    args = sys.argv[1:]
    debug = "--debug" in args
    configure_logging(debug)

    try:
        year = parse_year(args)
    except ValueError as e:
        logger.critical(e)
        sys.exit(2)

    config_file = parse_config_file(args)
    logger.info(f"Using config file: {config_file}")

    logger.info("Starting therapybilling...")
    try:
        therapybilling_main(config_file, year=year)
    except Exception as e:
        if debug:
            logger.critical(e, exc_info=True)
        else:
            logger.critical("therapybilling encountered an error.")
            logger.critical("Run with --debug for more details.")
        sys.exit(1)

    logger.info("therapybilling finished successfully.")
    sys.exit(0)
