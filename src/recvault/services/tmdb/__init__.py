"""Metadata provider (TMDB) client and models."""

from recvault.services.tmdb.client import MetadataProviderClient
from recvault.services.tmdb.models import ExternalIds, MediaDescription, normalize_media

__all__ = ["ExternalIds", "MediaDescription", "MetadataProviderClient", "normalize_media"]
