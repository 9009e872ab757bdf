"""Database readiness checker and availability exporter."""

__version__ = "1.0.0"
