"""
asgi.py -- Application assembly for RentAdmin.

This is the ONLY file that imports from both api/ and web/. It joins the two
independent layers into a single ASGI app without coupling them to each other.
api/main.py knows nothing about web/; the web routers know nothing about api/.

Run with:  uvicorn asgi:app --reload
"""

from api.main import app
from web.admin import router as admin_router
from web.apartments import router as apartments_router
from web.operations import router as operations_router
from web.payments import router as payments_router
from web.reports import router as reports_router
from web.routes import router as web_router
from web.tenants import router as tenants_router

# Mount the web UI routers here, not in api/main.py.
# This keeps api/ and web/ independent -- neither imports from the other.
for router in (
    web_router,
    apartments_router,
    tenants_router,
    payments_router,
    operations_router,
    reports_router,
    admin_router,
):
    app.include_router(router, tags=["Web UI"])
