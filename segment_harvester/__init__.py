"""Harvest WTAP's Mental Health Mondays segment into tagged MP3s and a podcast catalog."""

__version__ = "0.1.0"
