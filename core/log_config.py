"""
core/log_config.py -- Process-wide logging setup.

All FitTrack loggers live under the "fittrack" namespace (fittrack.api,
fittrack.auth, fittrack.store, fittrack.config) so one level setting
controls the whole application.
"""

import logging

LOG_FORMAT = "%(asctime)s %(levelname)-5s %(name)s %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def configure_logging(level: str = "INFO") -> None:
    """Install the root handler and set the fittrack log level.

    basicConfig is a no-op when the root logger already has handlers (for
    example under uvicorn or pytest), so the namespace level is set
    separately to keep LOG_LEVEL effective in both cases.
    """
    logging.basicConfig(level=logging.INFO, format=LOG_FORMAT, datefmt=DATE_FORMAT)
    logging.getLogger("fittrack").setLevel(level.upper())
