"""KIS quote proxy service."""
