"""
Wi-Fi Sentry Shared Module
==========================

Common utilities, models, and configuration management shared by the
Sentry threat engine, its collectors, sinks, and command-line interface.
"""

from shared.config import SentryConfig

__all__ = ["SentryConfig"]
