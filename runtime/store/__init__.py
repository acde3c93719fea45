"""
Storage abstractions for the ATV-AI runtime.

Includes:
- SessionStore: in-memory, TTL-bounded per-user-per-channel sessions
- LogStore: append-only JSONL logging of runtime events
"""
