"""
Todo API package.

The FastAPI application lives in `src.api.main` (`app`, or `create_app()` for a
fresh instance with its own in-memory stores).
"""
