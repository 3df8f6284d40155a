"""
API route modules.

This package contains subrouters for:
- Auth: login, refresh, logout and the current principal
- Super Admin: school registry, provisioning and platform accounts
- School portal (/schools/{school_code}/portal): users, academics, exams, finance,
  library, dormitory, pharmacy, notifications, reports and audit logs
- Website (/schools/{school_code}/website): public school content

Routers are included from src.api.main (under the /api/v1 prefix).
"""
