"""
FastAPI routers grouped by resource (users, avatars).

Each module exposes an APIRouter included by ``create_app`` in app.py.
Handlers stay thin: parse the request, call a service, wrap the result in the
``{status, message, data}`` envelope.
"""
