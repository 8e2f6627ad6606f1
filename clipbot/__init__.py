"""Telegram bot that turns uploaded videos into short looping .webm clips."""

__version__ = "0.1"
