"""Logging setup for Switchboard entry points."""

import logging

from switchboard.configuration.config import Settings, get_settings


def configure_logging(settings: Settings | None = None, force: bool = False) -> None:
    """Configure root logging from settings.

    Args:
        settings: Settings to read level and format from (defaults to cached settings)
        force: Replace handlers installed by an earlier configuration
    """
    settings = settings or get_settings()
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format=settings.log_format,
        force=force,
    )
    logging.getLogger("switchboard").setLevel(settings.log_level)
