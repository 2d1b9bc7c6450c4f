"""
Snowflake ID Generator Module

Generates unique, time-ordered 64-bit identifiers for messages, chats and
announcements, and decodes identifiers back into their creation time.

Layout (most significant bits first):

    |        42 bits         |  10 bits  |  12 bits  |
    |       timestamp        | worker_id | sequence  |
    | ms since 2020-01-01Z   |  always 0 |  0-4095   |

    - Timestamp: milliseconds elapsed since EPOCH (~139 years of range)
    - Worker ID: reserved for multi-node sharding, fixed to 0 for a single node
    - Sequence: 4096 IDs per millisecond before the generator waits for the
      next millisecond

Identifiers leave this module as base-10 strings so they can be stored in
text columns and carried through JSON and URLs without precision loss. The
epoch and the bit widths are part of the stored-data contract: changing
them breaks decoding for every identifier already issued.

Thread Safety:
    - generate_id() holds a threading.Lock() for the whole read-modify-write
      of the generator state, including the wait for the next millisecond
    - The decode helpers are pure and need no locking

Clock Considerations:
    - A clock that moves backwards raises ClockRegressionError; the generator
      never retries, since identifiers issued afterwards could collide
    - Sequence exhaustion is not an error; the generator spins until the
      clock advances
"""

import re
import threading
import time
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional, Union

from pydantic import BaseModel, Field

from core.exceptions import ClockRegressionError, MalformedIdentifierError
from services.logger import setup_logger

logger = setup_logger()

EPOCH = 1577836800000  # 2020-01-01T00:00:00.000Z
EPOCH_DATETIME = datetime(2020, 1, 1, tzinfo=timezone.utc)

TIMESTAMP_BITS = 42
WORKER_ID_BITS = 10
SEQUENCE_BITS = 12
MAX_TIMESTAMP = (1 << TIMESTAMP_BITS) - 1
MAX_WORKER_ID = (1 << WORKER_ID_BITS) - 1
MAX_SEQUENCE = (1 << SEQUENCE_BITS) - 1
WORKER_ID_SHIFT = SEQUENCE_BITS
TIMESTAMP_SHIFT = WORKER_ID_BITS + SEQUENCE_BITS
MAX_IDENTIFIER = (1 << (TIMESTAMP_BITS + TIMESTAMP_SHIFT)) - 1

# Width of the varchar primary key columns identifiers are stored in.
MAX_IDENTIFIER_LENGTH = 21

_IDENTIFIER_PATTERN = re.compile(r"[0-9]+", re.ASCII)

Identifier = Union[str, int]


class SnowflakeParts(BaseModel):
    """The three bit fields packed into an identifier.

    Args:
        timestamp_ms (int): Absolute Unix timestamp in milliseconds.
        worker_id (int): Worker field, always 0 for this deployment.
        sequence (int): Within-millisecond counter.
    """

    timestamp_ms: int = Field(..., ge=0)
    worker_id: int = Field(0, ge=0, le=MAX_WORKER_ID)
    sequence: int = Field(0, ge=0, le=MAX_SEQUENCE)

    @property
    def created_at(self) -> datetime:
        return datetime.fromtimestamp(0, timezone.utc) + timedelta(
            milliseconds=self.timestamp_ms
        )


class SnowflakeIDGenerator:
    """A thread-safe Snowflake ID generator.

    One instance is shared per process (see services.identifiers); the
    worker field is fixed to 0, so two generators running at the same time
    can produce the same identifier.

    Attributes:
        worker_id: Reserved worker field (0-1023), 0 by default.
        epoch: The epoch timestamp in milliseconds.
    """

    def __init__(
        self,
        worker_id: int = 0,
        epoch: int = EPOCH,
        clock: Optional[Callable[[], int]] = None,
    ):
        """Initializes a new Snowflake ID generator instance.

        Args:
            worker_id: Reserved worker field (0-1023).
            epoch: The epoch timestamp in milliseconds.
            clock: Callable returning the wall clock in milliseconds. Defaults
                to the system clock.

        Raises:
            ValueError: If the worker_id is outside the valid range (0-1023).
        """
        if not 0 <= worker_id <= MAX_WORKER_ID:
            raise ValueError(f"Worker ID must be between 0 and {MAX_WORKER_ID}")

        self.worker_id = worker_id
        self.epoch = epoch
        self._clock = clock or self._system_timestamp
        self._sequence = 0
        self._last_timestamp = -1
        self.lock = threading.Lock()

    @staticmethod
    def _system_timestamp() -> int:
        """Returns the current timestamp in milliseconds."""
        return int(time.time() * 1000)

    @property
    def last_timestamp(self) -> int:
        return self._last_timestamp

    @property
    def sequence(self) -> int:
        return self._sequence

    def _wait_for_next_millis(self, last_timestamp: int) -> int:
        """Spins until the clock moves past last_timestamp.

        Args:
            last_timestamp: The timestamp of the last generated ID.

        Returns:
            The next millisecond timestamp.
        """
        timestamp = self._clock()
        while timestamp <= last_timestamp:
            timestamp = self._clock()
        return timestamp

    def generate_id(self) -> int:
        """Generates a new unique Snowflake ID.

        Returns:
            The identifier as an integer.

        Raises:
            ClockRegressionError: If the system clock moves backward.
            ValueError: If the clock is before the epoch or past the end of
                the 42 bit timestamp range.
        """
        with self.lock:
            timestamp = self._clock()

            if timestamp < self._last_timestamp:
                logger.error(
                    "Clock moved backwards: last=%d current=%d",
                    self._last_timestamp,
                    timestamp,
                )
                raise ClockRegressionError(self._last_timestamp, timestamp)

            sequence = 0
            if timestamp == self._last_timestamp:
                sequence = (self._sequence + 1) & MAX_SEQUENCE
                if sequence == 0:
                    logger.debug(
                        "Sequence exhausted at %d, waiting for next millisecond",
                        timestamp,
                    )
                    timestamp = self._wait_for_next_millis(self._last_timestamp)

            elapsed = timestamp - self.epoch
            if not 0 <= elapsed <= MAX_TIMESTAMP:
                raise ValueError(
                    f"Timestamp {timestamp} is outside the range covered by the epoch"
                )

            # Commit only once the identifier is known to be encodable.
            self._last_timestamp = timestamp
            self._sequence = sequence

            return (
                (elapsed << TIMESTAMP_SHIFT)
                | (self.worker_id << WORKER_ID_SHIFT)
                | sequence
            )

    def generate(self) -> str:
        """Generates a new identifier rendered as a base-10 string."""
        return str(self.generate_id())


def parse_identifier(identifier: Identifier) -> int:
    """Parse an identifier into its exact integer value.

    Args:
        identifier (str | int): A non-negative decimal string or integer.

    Returns:
        int: The identifier value.

    Raises:
        MalformedIdentifierError: If the value is not a non-negative integer
            or does not fit in 64 bits.
    """
    # bool is an int subclass but never a valid identifier
    if isinstance(identifier, bool):
        raise MalformedIdentifierError(identifier)
    if isinstance(identifier, int):
        if not 0 <= identifier <= MAX_IDENTIFIER:
            raise MalformedIdentifierError(identifier)
        return identifier
    if (
        not isinstance(identifier, str)
        or len(identifier) > MAX_IDENTIFIER_LENGTH
        or not _IDENTIFIER_PATTERN.fullmatch(identifier)
    ):
        raise MalformedIdentifierError(identifier)
    value = int(identifier)
    if value > MAX_IDENTIFIER:
        raise MalformedIdentifierError(identifier)
    return value


def decode_timestamp_ms(identifier: Identifier, epoch: int = EPOCH) -> int:
    """Return the Unix millisecond timestamp embedded in an identifier."""
    return (parse_identifier(identifier) >> TIMESTAMP_SHIFT) + epoch


def decode_timestamp(identifier: Identifier, epoch: int = EPOCH) -> datetime:
    """Return the creation time of an identifier as an aware UTC datetime.

    Raises:
        MalformedIdentifierError: If the value is not a non-negative integer.
    """
    elapsed = parse_identifier(identifier) >> TIMESTAMP_SHIFT
    return EPOCH_DATETIME + timedelta(milliseconds=elapsed + epoch - EPOCH)


def decompose(identifier: Identifier, epoch: int = EPOCH) -> SnowflakeParts:
    """Split an identifier into its timestamp, worker and sequence fields.

    Args:
        identifier (str | int): A non-negative decimal string or integer.
        epoch (int): The epoch timestamp in milliseconds.

    Returns:
        SnowflakeParts: The decoded fields.

    Raises:
        MalformedIdentifierError: If the value is not a valid identifier.
    """
    value = parse_identifier(identifier)
    return SnowflakeParts(
        timestamp_ms=(value >> TIMESTAMP_SHIFT) + epoch,
        worker_id=(value >> WORKER_ID_SHIFT) & MAX_WORKER_ID,
        sequence=value & MAX_SEQUENCE,
    )


def compose(
    timestamp_ms: int, sequence: int = 0, worker_id: int = 0, epoch: int = EPOCH
) -> str:
    """Build the identifier for the given field values.

    Useful for fixtures and for range queries, e.g. compose(t) is the
    smallest identifier that can be issued at or after millisecond t.

    Raises:
        ValueError: If any field falls outside its bit width.
    """
    elapsed = timestamp_ms - epoch
    if not 0 <= elapsed <= MAX_TIMESTAMP:
        raise ValueError(
            f"Timestamp {timestamp_ms} is outside the range covered by the epoch"
        )
    if not 0 <= worker_id <= MAX_WORKER_ID:
        raise ValueError(f"Worker ID must be between 0 and {MAX_WORKER_ID}")
    if not 0 <= sequence <= MAX_SEQUENCE:
        raise ValueError(f"Sequence must be between 0 and {MAX_SEQUENCE}")
    return str(
        (elapsed << TIMESTAMP_SHIFT) | (worker_id << WORKER_ID_SHIFT) | sequence
    )
