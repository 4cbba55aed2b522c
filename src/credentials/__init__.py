"""Credential definitions for external services."""

from .joai_api import JoaiApiCredentials

__all__ = ["JoaiApiCredentials"]
