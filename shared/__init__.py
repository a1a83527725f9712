"""
Persistence code shared by the API and scripts: ORM models, engine
construction and connection pool instrumentation.
"""
