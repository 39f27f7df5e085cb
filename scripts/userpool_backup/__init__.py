"""User pool backup and restore.

Exports Cognito user pools page by page to JSON or CSV files, and restores
users from those files into a single pool under a shared rate limit,
optionally replicating group memberships.
"""
