"""
Persistence adapters.

``sql_repository`` wraps the SQLAlchemy session; ``avatar_storage`` owns the
files under ``store/``. Services depend on these classes instead of opening
sessions or files themselves.
"""
