"""
Services package for the Guild Roster bot.
"""

from .base import BaseService
from .roster_service import RosterService

__all__ = ['BaseService', 'RosterService']
