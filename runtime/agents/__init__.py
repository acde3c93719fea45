"""
Agents used by the ATV-AI runtime.

The TurnDispatcher:

- receives a platform event (command, message, button)
- loads / refreshes the Session and runs one Planner cycle
- replies, asks, previews an event, or commits a confirmed draft
"""
