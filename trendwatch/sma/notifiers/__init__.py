"""Delivery channels for analysis reports."""

from .telegram import TelegramNotifier

__all__ = ["TelegramNotifier"]
