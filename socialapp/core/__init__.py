"""
Core utilities shared across the socialapp API.

This package hosts configuration, logging setup, password hashing and the
error types that routers translate into HTTP responses. Nothing in here
imports FastAPI routers or touches the database.
"""
