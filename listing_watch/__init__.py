"""Watch employer career pages and push new job listings to a webhook."""

__version__ = "0.1.0"
