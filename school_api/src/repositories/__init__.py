"""
Repository layer for data access.

Repositories encapsulate SQLAlchemy queries for each domain area. They only flush;
committing is left to the calling service. Tenant repositories expect a session
bound to the school's own database (src.core.deps.get_tenant_session).
"""
