"""Property Hub: cached, rate-limited listing search for the CRM dashboard."""

__version__ = "0.1.0"
