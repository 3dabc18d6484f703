"""
Adapters package for the Mobile Service.

Contains the PostgreSQL repositories behind the cached mobile reads and
the HTTP stream connectivity checker. Repositories return plain dict rows;
mapping to API models happens in the domain layer.
"""

from .cards_repository import CardsRepository
from .database import Database
from .news_repository import NewsRepository
from .polls_repository import PollsRepository
from .radio_settings_repository import RadioSettingsRepository
from .settings_repository import SettingsRepository
from .stream_checker import ProbeResult, StreamConnectivityChecker, validate_stream_url

__all__ = [
    "CardsRepository",
    "Database",
    "NewsRepository",
    "PollsRepository",
    "RadioSettingsRepository",
    "SettingsRepository",
    "ProbeResult",
    "StreamConnectivityChecker",
    "validate_stream_url",
]
