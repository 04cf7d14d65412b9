"""
Forum Import

A one-time importer that moves a legacy forum's content into a new
community platform.

Imports, in dependency order:
- Users, groups and group memberships
- Top-level tags as channels
- Discussions as posts, with likes as reactions and per-user read state
- Replies as comments, threaded through their post mentions
- User mentions embedded in rich text
"""

__version__ = "0.1.0"
