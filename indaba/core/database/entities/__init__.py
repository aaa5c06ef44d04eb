"""
Database entity models.

This package contains all database entity models organized by business domain.
Importing the package registers every table on ``Base.metadata``.

Modules:
- users: Accounts, role profiles, login sessions, 2FA and user settings
- families: Families, children, nanny assignments, access requests, documents,
  preferences and parent invitations
- observations: Child observations and their comments
- milestones: Standard and custom milestones and achievements
- messages: Direct messages
- nanny: Certifications, hours logs, audits, active shifts and routines
- feedback: Parent feedback about nannies
- moderation: Flagged content and keyword flags
- resources: Resource library and content tags
- agencies: Agencies and their nanny assignments
- admin: Scheduled reports and system settings
- sync: Offline sync log
"""

from . import (
    admin,
    agencies,
    families,
    feedback,
    messages,
    milestones,
    moderation,
    nanny,
    observations,
    resources,
    sync,
    users,
)

__all__ = [
    "admin",
    "agencies",
    "families",
    "feedback",
    "messages",
    "milestones",
    "moderation",
    "nanny",
    "observations",
    "resources",
    "sync",
    "users",
]
