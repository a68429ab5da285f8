"""Runtime statistics for a wallbox derived from sub meter readings."""

__version__ = "0.1.0"
