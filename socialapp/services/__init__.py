"""
High-level use cases for the socialapp API.

Each service orchestrates repositories and storage adapters to implement the
account and avatar rules (register, change avatar, search, login, etc.).
Services receive their collaborators through the constructor; routers fetch
the configured instances from ``app.state``.
"""
