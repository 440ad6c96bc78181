"""Album API: Discord-backed photo albums."""

__version__ = "1.0.0"
