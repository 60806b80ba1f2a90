"""Serial OLED display bridge for wearable voice sessions."""

__version__ = "0.1.0"
