"""Stateful authorization services built on a MembershipStore."""

from .expiration import ExpirationService
from .inheritance import InheritanceService
from .permission import PermissionCacheEntry, PermissionService
from .scope import ScopeService

__all__ = [
    "ExpirationService",
    "InheritanceService",
    "PermissionCacheEntry",
    "PermissionService",
    "ScopeService",
]
