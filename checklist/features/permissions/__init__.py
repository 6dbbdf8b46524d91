"""
Permission feature module.

Fixed role table (owner, admin, member, viewer) with a per-membership
overlay, used by every service before it mutates anything.
"""
