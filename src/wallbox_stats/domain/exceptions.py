from typing import Sequence


class MeterError(Exception):
    """Base class for errors that abort a single polling cycle."""


class TransportError(MeterError, ConnectionError):
    """The meter endpoint could not be reached or answered with an error status."""


class FetchTimeoutError(MeterError, TimeoutError):
    """The meter endpoint did not answer before the deadline."""


class DecodeError(MeterError, ValueError):
    """The meter payload is not valid JSON or does not have the expected shape."""


class MeterMissingError(MeterError):
    """A meter required for aggregation is absent from the reading."""

    def __init__(self, name: str, missing: Sequence[str] = ()):
        self.name = name
        self.missing = tuple(missing) or (name,)
        super().__init__(f"meter {name!r} doesn't exist")
