"""CLI entry point for the dental clinic assistant.

A terminal chat loop over the same chat service the API uses, for
testing and development.  For production, use the FastAPI server
(clinic_assistant/server.py).

Usage:
    python -m clinic_assistant.main                           # anonymous visitor
    python -m clinic_assistant.main --email jane@example.com  # as a patient
    python -m clinic_assistant.main --email dr@clinic.com --role admin
    python -m clinic_assistant.main --debug                   # show all logs
"""

from __future__ import annotations

import argparse
import logging

from dotenv import load_dotenv

logger = logging.getLogger(__name__)


def _configure_logging(debug: bool = False) -> None:
    """Set up logging: WARNING by default, DEBUG when --debug is passed."""
    root_level = logging.DEBUG if debug else logging.WARNING
    logging.basicConfig(
        level=root_level,
        format="%(asctime)s %(levelname)-8s %(name)s - %(message)s",
    )

    if not debug:
        # Silence chatty HTTP loggers even if root is WARNING
        logging.getLogger("httpx").setLevel(logging.WARNING)
        logging.getLogger("httpcore").setLevel(logging.WARNING)

    logging.getLogger("clinic_assistant").setLevel(logging.DEBUG if debug else logging.INFO)


def main():
    """Run the interactive CLI chat loop."""
    parser = argparse.ArgumentParser(description="Dental clinic assistant CLI")
    parser.add_argument(
        "--debug", action="store_true",
        help="Show all log messages including HTTP requests",
    )
    parser.add_argument("--email", help="Chat as this user (patient or admin)")
    parser.add_argument(
        "--role", choices=["user", "admin"],
        help="Role hint; the stored account role wins for known users",
    )
    args = parser.parse_args()

    load_dotenv()
    _configure_logging(debug=args.debug)

    # Config reads required secrets at import time, so import after load_dotenv
    from clinic_assistant.services.chat_service import generate_session_id  # noqa: PLC0415
    from clinic_assistant.wiring import build_services  # noqa: PLC0415

    print("\n" + "=" * 60)
    print("  Dental Clinic Assistant - CLI Chat")
    print("=" * 60)
    print("  Type your message and press Enter ('help' lists commands).")
    print("  Commands: 'quit' to exit, 'new' for a new session.")
    print("=" * 60 + "\n")

    services = build_services()
    session_id = generate_session_id()
    logger.info("Started new session: %s", session_id)

    try:
        while True:
            try:
                user_input = input("You: ").strip()
            except (KeyboardInterrupt, EOFError):
                print("\n\nGoodbye!")
                break

            if not user_input:
                continue

            if user_input.lower() in ("exit", "quit", "q"):
                print("\nGoodbye! Keep smiling!")
                break

            if user_input.lower() == "new":
                session_id = generate_session_id()
                print(f"\n>> New session started: {session_id[:16]}...\n")
                continue

            try:
                turn = services.chat.handle_turn(
                    user_input,
                    session_id=session_id,
                    user_email=args.email,
                    user_role=args.role,
                )
                print(f"\nAssistant: {turn.message}\n")
            except KeyboardInterrupt:
                print("\n\nGoodbye!")
                break
            except Exception as e:
                logger.exception("Error processing message")
                print(f"\nAssistant: I'm sorry, something went wrong: {e}")
                print("     Please try again or type 'new' to start a fresh session.\n")
    finally:
        services.close()


if __name__ == "__main__":
    main()
