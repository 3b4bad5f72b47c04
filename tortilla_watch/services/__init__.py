"""
Services module initialization.
"""
from tortilla_watch.services.availability_service import AvailabilityService
from tortilla_watch.services.archive_service import ArchiveService
from tortilla_watch.services.outage_service import OutageService
from tortilla_watch.services.reaction_service import ReactionService
from tortilla_watch.services.storage_service import StorageService, StorageError
from tortilla_watch.services.rating_service import RatingService
from tortilla_watch.services.stats_service import StatsService
from tortilla_watch.services.batch_service import BatchService
from tortilla_watch.services.system_service import SystemService

__all__ = [
    "AvailabilityService",
    "ArchiveService",
    "OutageService",
    "ReactionService",
    "StorageService",
    "StorageError",
    "RatingService",
    "StatsService",
    "BatchService",
    "SystemService",
]
