"""
Pydantic / datamodels used by the ATV-AI runtime.

Split into:
- session_models: Session + EventDraft + SessionPatch
- api_models: HTTP request/response schemas
"""
