"""Persistence and external collaborators — store, audit trail, identity."""

from dealflow.persistence.audit import AuditSink, EventLogAuditSink, NullAuditSink
from dealflow.persistence.event_log import EventKind, EventLog, EventRecord
from dealflow.persistence.identity import (
    AllowAllPermissions,
    DenyListPermissions,
    PermissionOracle,
    RoleCache,
    RoleOracle,
    StoreRoleOracle,
)
from dealflow.persistence.store import EntityStore, EntityType, InMemoryEntityStore

__all__ = [
    "AllowAllPermissions",
    "AuditSink",
    "DenyListPermissions",
    "EntityStore",
    "EntityType",
    "EventKind",
    "EventLog",
    "EventLogAuditSink",
    "EventRecord",
    "InMemoryEntityStore",
    "NullAuditSink",
    "PermissionOracle",
    "RoleCache",
    "RoleOracle",
    "StoreRoleOracle",
]
