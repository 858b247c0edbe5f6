"""Cronbridge - keeps a live registry of cron job definitions scheduled locally."""

__app_name__ = "cronbridge"
__version__ = "0.1.0"
