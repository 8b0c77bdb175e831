"""ProductVision: AI product mockups from a single upload."""

__version__ = "1.0.0"
