"""RescueSync - Offline-first rescue request tracking with outbox synchronization."""

__version__ = "0.1.0"
