"""
MELONOTES Backend
=================

What:  Personal note-taking API for tracking database problems, the plans
       tried against them, and the code and scripts that went with each plan.
How:   FastAPI application with layered architecture:
       - routes/:        HTTP request handling (thin controllers)
       - repositories/:  Entity operations written once against storage
       - storage/:       Relational (SQLAlchemy) and document (Couchbase) adapters
       - services/:      Authentication and upload handling
       - models/:        SQLAlchemy ORM tables for the relational backend
       - schemas/:       Pydantic request/response models
       - middleware/:    Cross-cutting concerns (request id, logging, throttling)
"""

__version__ = "1.0.0"
