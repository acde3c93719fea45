"""
Custom exceptions for ATV-AI.

These exceptions are intentionally simple and descriptive.
They are used across:

  - core/events/
  - runtime/agents/
  - runtime/api/

Placing them at the project root (exceptions/) avoids circular imports and
keeps exception types consistent across modules.
"""


class DraftValidationError(Exception):
    """
    Raised when an event draft is about to be committed but fails validation.

    The message is the first failing rule, e.g. "Start time must be in the
    future." and is safe to show to the user.
    """

    def __init__(self, message):
        self.message = message
        super().__init__(message)


class DiscordAPIError(Exception):
    """
    Raised when the Discord REST API answers with a non-2xx status.

    Carries the HTTP status code and the raw response body so callers can
    log it or surface it.
    """

    def __init__(self, status_code, body=None):
        self.status_code = status_code
        self.body = body or ""
        msg = f"Discord API request failed with status {status_code}"
        if self.body:
            msg += f": {self.body}"
        super().__init__(msg)
