"""
Core application utilities for settings and FastAPI dependencies.

This package provides:
- Application-level settings (separate from DB settings)
- Logging configuration with correlation id and school code context
- Password hashing and JWT helpers
- Dependency helpers (principal resolution, role checks, per-school DB sessions)
"""
