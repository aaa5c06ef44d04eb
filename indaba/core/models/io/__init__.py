"""
I/O models for API requests and responses.

These models define the contract between API endpoints and clients and are
kept separate from the database entities.

Modules:
- auth: Registration, login, 2FA and session models
- users: Notification, privacy and sync settings, export and deletion
- observations: Observation, comment and assigned-child models
- messages: Messaging models
- nanny: Nanny profile, certification, hours log and shift models
- parent: Parent profile, child, milestone, family and feedback models
- admin: Moderation, resources, agencies, reports and system settings
- sync: Offline sync replay models
"""
