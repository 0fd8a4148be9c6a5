"""
FastAPI routers grouped by domain.

Each module exposes an APIRouter included by ``greeting_api.app.create_app``.
"""
