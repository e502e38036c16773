"""Dental clinic assistant: chat front desk and booking backend.

Architecture Overview
=====================

Every chat turn runs through a small **LangGraph** state machine:

1. **interpret**: the command interpreter.  Messages such as
   ``login``, ``book Scaling & Polishing on 2026-03-02 at 10:00 AM`` or
   (for doctors) ``approve <id>`` are parsed deterministically and executed against the
   auth and appointment services.  The reply is plain text.

2. **assistant**: when no command matched, the message goes to Claude with
   a role-specific system prompt (doctor, patient or visitor) that embeds
   the clinic knowledge base, plus the last few transcript entries.

Routing: interpret → (reply?) → END, otherwise interpret → assistant → END

Key Design Decisions
--------------------
- **Commands before the model**: actions with side effects never depend on
  the model.  Malformed commands get a usage correction instead of a model
  answer.
- **Storage**: SQLAlchemy Core tables for users, appointments and chat
  transcripts.  Transcript appends only insert rows, so concurrent turns on
  the same session never overwrite each other.
- **Respond, then record**: the reply is produced first and the turn is
  appended afterwards; a failed append is logged and the reply still goes
  out.
- **Explicit wiring**: the database, services and graph are built once
  (``wiring.build_services``) and injected, both by the FastAPI lifespan
  and by the CLI.
- **Dual Interface**: FastAPI server (production) + CLI chat loop
  (development/testing).

Package Structure
-----------------
- ``clinic_assistant/agent.py``: turn graph and conversational fallback
- ``clinic_assistant/commands/``: command parser and interpreter
- ``clinic_assistant/prompts.py``: role-conditioned system prompts
- ``clinic_assistant/caller.py``: who is chatting (visitor, patient, doctor)
- ``clinic_assistant/config.py``: configuration from env vars / SSM
- ``clinic_assistant/models.py`` / ``database.py``: tables and engine
- ``clinic_assistant/services/``: auth, appointments, chat sessions, metrics
- ``clinic_assistant/api/``: FastAPI routes and Pydantic schemas
- ``clinic_assistant/server.py``: FastAPI application
- ``clinic_assistant/main.py``: CLI chat interface
"""
