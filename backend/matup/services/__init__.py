"""
Services Layer

Business logic for leagues:
- Accept domain inputs (IDs, sessions, payloads)
- Return domain outputs (models, dataclasses)
- Do NOT depend on HTTP request/response objects
- Raise matup.services.errors.LeagueError subclasses on rejected commands
"""
