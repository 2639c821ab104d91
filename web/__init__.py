"""
Web layer: FastAPI app, JSON API routes and session handling.
"""
