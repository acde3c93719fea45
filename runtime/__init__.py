"""
Runtime package for the ATV-AI server.

This package contains:
- API layer (FastAPI server + routes)
- Agents (the turn dispatcher)
- Stores (sessions, event log)
- Models (Pydantic / dataclasses for requests and sessions)
"""
