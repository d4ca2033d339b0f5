"""
Database collaborator layer.

Responsibilities:
- Read Supabase credentials from the environment.
- Hand out a single query client for the process.
- Fall back to a pandas-backed local store when Supabase is not configured.
"""
