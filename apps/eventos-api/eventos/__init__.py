"""Back-office API for event-hall reservations."""

__version__ = "1.0.0"
