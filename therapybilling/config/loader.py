"""Config loader for therapybilling."""

import logging
import tomllib
from typing import Any

from pydantic import ValidationError

from .model import Config

logger = logging.getLogger(__name__)


def apply_year_override(data: dict[str, Any], year: int) -> dict[str, Any]:
    """Return raw config data with every output pinned to ``year``."""
    outputs = data.get("output")
    if not isinstance(outputs, dict):
        return data

    logger.info(f"Reporting year {year} for outputs: {', '.join(outputs)}")
    return {
        **data,
        "output": {
            name: {**output, "year": year} if isinstance(output, dict) else output
            for name, output in outputs.items()
        },
    }


def load_config(config_file: str, year: int | None = None) -> Config:
    """Load configuration from a TOML file.

    ``year`` replaces the year of every configured output.
    """
    try:
        with open(config_file, "rb") as f:
            data = tomllib.load(f)
        logger.debug(f"Read configuration from {config_file}.")

        if year is not None:
            data = apply_year_override(data, year)
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug(f"Config: {data}")

        config = Config.model_validate(data)

    except FileNotFoundError:
        logger.critical(f"Configuration file not found: {config_file}")
        raise
    except tomllib.TOMLDecodeError:
        logger.critical(f"Error decoding TOML file: {config_file}")
        raise
    except ValidationError as e:
        logger.critical("Configuration validation failed.")
        for error in e.errors():
            loc = ".".join(str(x) for x in error["loc"])
            logger.critical(
                f"Error in field '{loc}': {error['msg']}. Provided input: {error['input']}"
            )
        raise

    source = config.source.url or config.source.path
    logger.info(
        f"Configuration for {config.clinic.name}: records from {source}, "
        f"{len(config.output)} output(s)."
    )
    return config
