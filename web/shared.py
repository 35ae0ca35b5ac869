"""Shared web infrastructure: slowapi rate limiter and app version.

Neutral module with no imports from web.*, safe for all web modules to import.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

from version import __version__

limiter = Limiter(key_func=get_remote_address)

APP_TITLE = "FamilyReel"
APP_VERSION = __version__
