"""
Process-wide identifier service.

Entity creation code (messages, chats, announcements) calls
generate_identifier() for every new primary key. All calls go through one
SnowflakeIDGenerator per process, because the worker field is fixed and two
generators in the same process could produce the same identifier.
"""

import threading
from datetime import datetime
from typing import Optional

from core.exceptions import MalformedIdentifierError
from services.logger import setup_logger
from utils.snowflake import Identifier, SnowflakeIDGenerator, decode_timestamp

logger = setup_logger()

_generator: Optional[SnowflakeIDGenerator] = None
_generator_lock = threading.Lock()


def get_generator() -> SnowflakeIDGenerator:
    """Return the shared generator, creating it on first use."""
    global _generator
    with _generator_lock:
        if _generator is None:
            _generator = SnowflakeIDGenerator()
            logger.info(
                "Initialized Snowflake generator with worker ID %d",
                _generator.worker_id,
            )
        return _generator


def reset_generator(generator: Optional[SnowflakeIDGenerator] = None) -> None:
    """Replace the shared generator; None rebuilds it lazily on next use."""
    global _generator
    with _generator_lock:
        _generator = generator


def generate_identifier() -> str:
    """Generate a new identifier with the shared generator.

    Raises:
        ClockRegressionError: If the system clock moved backwards.
    """
    return get_generator().generate()


def snowflake_to_datetime(identifier: Identifier) -> Optional[datetime]:
    """Decode an identifier for display, returning None when it is malformed.

    Args:
        identifier (str | int): The identifier to decode.

    Returns:
        Optional[datetime]: The aware UTC creation time, or None.
    """
    try:
        return decode_timestamp(identifier)
    except MalformedIdentifierError as e:
        logger.warning("Could not decode identifier: %s", e)
        return None
