"""
Registry Clients Package
========================

Implementations of RegistryClient.

Available clients:
- InMemoryRegistry: deterministic fake for testing
- HttpRegistryClient: application emoji REST API over httpx
"""

from .base import RegistryClient
from .memory import InMemoryRegistry

__all__ = [
    'RegistryClient',
    'InMemoryRegistry',
]

# HttpRegistryClient is not re-exported here
# Use: from emotesync.registry.http import HttpRegistryClient, HttpRegistryConfig
