"""
core.api.openai_client

Thin wrapper around the OpenAI Responses API for ATV-AI.

Used by:
  - core/planner/planner.py (schema-constrained planning calls)
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from openai import OpenAI

from configs.settings import settings


# -------------------------------------------------------------------
# Client + config
# -------------------------------------------------------------------

# Default model for ATV-AI (customizable via ATV_AI_OPENAI_MODEL)
DEFAULT_MODEL = settings.openai_model

_client: Optional[OpenAI] = None


def get_client() -> OpenAI:
    """Return the shared client, creating it on first use.

    Creation is deferred so that importing this module does not require
    OPENAI_API_KEY to be set.
    """
    global _client
    if _client is None:
        _client = OpenAI(
            api_key=settings.openai_api_key,
            base_url=settings.openai_base_url,
        )
    return _client


# -------------------------------------------------------------------
# Public function
# -------------------------------------------------------------------

def send_structured_request(
    messages: List[Dict[str, str]],
    *,
    schema: Dict[str, Any],
    schema_name: str,
    model: Optional[str] = None,
    temperature: float = 0.0,
) -> str:
    """
    Send role-tagged messages and ask for output constrained to ``schema``.

    Parameters
    ----------
    messages : list of {"role", "content"}
        Developer instructions followed by the user's text.
    schema : dict
        Strict JSON schema (closed objects, every key required).
    schema_name : str
        Name reported to the API for the schema.
    model : str, optional
        Override the default model name.
    temperature : float
        Sampling temperature.

    Returns
    -------
    str
        The model's output text (possibly empty). Parsing is left to the
        caller.

    Raises
    ------
    OpenAIError
        If the API call fails. Nothing is retried here.
    """
    response = get_client().responses.create(
        model=model or DEFAULT_MODEL,
        input=messages,
        text={
            "format": {
                "type": "json_schema",
                "name": schema_name,
                "strict": True,
                "schema": schema,
            }
        },
        temperature=temperature,
    )
    return response.output_text or ""
