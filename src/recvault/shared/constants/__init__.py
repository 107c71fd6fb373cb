"""
RecVault Constants Module

Centralized constants for RecVault. Magic values used across the
package are defined here.
"""

from .cache import (
    DEFAULT_NAMED_CACHES,
    CacheDefaults,
    CacheNames,
    CounterNames,
    PersistenceLayout,
)
from .http_codes import HTTPHeaders, HTTPStatusCodes
from .network import NetworkConfig, RetryDefaults, TMDBConfig, TraktConfig
from .system import BASE_DAY, BASE_HOUR, BASE_MINUTE, BASE_SECOND, Application, FileSystem

__all__ = [
    "BASE_DAY",
    "BASE_HOUR",
    "BASE_MINUTE",
    "BASE_SECOND",
    "DEFAULT_NAMED_CACHES",
    "Application",
    "CacheDefaults",
    "CacheNames",
    "CounterNames",
    "FileSystem",
    "HTTPHeaders",
    "HTTPStatusCodes",
    "NetworkConfig",
    "PersistenceLayout",
    "RetryDefaults",
    "TMDBConfig",
    "TraktConfig",
]
