"""Pet membership redemption engine API."""

__version__ = "1.0.0"
