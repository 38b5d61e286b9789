"""focus-tempo — facial-expression focus estimation for adaptive music."""

__version__ = "0.1.0"
