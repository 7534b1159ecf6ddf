"""
Waterfall Manager Backend — Application Package
================================================

Layers:
    routes/      HTTP surface (thin handlers, dependency injection)
    services/    lifecycle engine, project service, authentication, authorization
    models/      SQLAlchemy ORM models, phase/role/status vocabularies
    schemas/     Pydantic request/response contracts
    database.py  engine, sessions, atomic unit
"""

__version__ = "1.0.0"
