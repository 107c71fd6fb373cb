"""Shared utilities for RecVault: errors, logging and constants."""
