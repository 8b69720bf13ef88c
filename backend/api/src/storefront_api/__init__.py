"""FastAPI application for storefront payment endpoints."""
