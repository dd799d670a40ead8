"""mailq: a small retrying queue for transactional email."""

__version__ = "0.1.0"
