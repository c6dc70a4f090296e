"""Product catalog crawler with proxy-rotating, block-aware retries."""

__version__ = "0.1.0"
