"""Trace-driven cache simulation: tag stores, timed cache queues, configuration and a trace-driven core."""

__version__ = "0.1.0"