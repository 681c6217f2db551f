"""Hive: fleet coordinator for remote worker nodes."""

__version__ = "1.0.0"
