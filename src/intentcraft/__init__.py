"""intentcraft - intent-driven configuration of network devices."""

__version__ = "0.1.0"
