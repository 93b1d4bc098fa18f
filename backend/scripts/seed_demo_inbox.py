"""Seed demo conversations into the support inbox.

Creates three tickets through the same service calls the API uses:
one open with only a visitor message, one in progress with an operator
reply and an image attachment, and one resolved (carrying the resolution
marker the widget reacts to).

All demo contacts use the DEMO_DOMAIN email domain for easy cleanup.

Usage (from backend/):
    python scripts/seed_demo_inbox.py          # Insert demo data
    python scripts/seed_demo_inbox.py --clean  # Remove demo data
"""

import argparse
import sys
from pathlib import Path

# Ensure backend/ is on the path so support_chat.* imports work
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from support_chat.db.client import get_supabase  # noqa: E402
from support_chat.schemas.messages import ContactMessageRequest, MessageKind  # noqa: E402
from support_chat.services import inbox_service  # noqa: E402
from support_chat.services.message_codec import encode_body  # noqa: E402

DEMO_DOMAIN = "demo.invalid"

# ---------------------------------------------------------------------------
# Demo conversations
# ---------------------------------------------------------------------------

CONVERSATIONS = [
    {
        "name": "Ana Souza",
        "email": f"ana@{DEMO_DOMAIN}",
        "visitor": ["Hi! Can I book a haircut for Saturday morning?"],
        "operator": [],
        "resolve": None,
    },
    {
        "name": "Bruno Lima",
        "email": f"bruno@{DEMO_DOMAIN}",
        "visitor": [
            "My color came out different from the reference photo.",
            encode_body(MessageKind.IMAGE, "https://example.com/demo/reference.jpg"),
        ],
        "operator": ["Sorry about that! Could you come by on Tuesday for a touch-up?"],
        "resolve": None,
    },
    {
        "name": "Carla Dias",
        "email": f"carla@{DEMO_DOMAIN}",
        "visitor": ["Do you accept card payments?"],
        "operator": ["Yes, all major cards and PIX."],
        "resolve": "Thanks for reaching out!",
    },
]


def seed() -> None:
    """Insert the demo conversations."""
    print("Connecting to Supabase...")
    get_supabase()

    for convo in CONVERSATIONS:
        ticket_id = None
        for text in convo["visitor"]:
            response = inbox_service.receive_contact_message(
                ContactMessageRequest(
                    name=convo["name"],
                    email=convo["email"],
                    message=text,
                    source="seed_script",
                )
            )
            ticket_id = response.ticket_id
        for text in convo["operator"]:
            inbox_service.send_ticket_message(ticket_id, text)
        if convo["resolve"] is not None:
            inbox_service.resolve_ticket(ticket_id, convo["resolve"])
        print(f"  {convo['email']}: ticket {ticket_id}")

    print("\nDone! Demo inbox seeded successfully.")
    print("Test with: GET /api/inbox/tickets")


def clean() -> None:
    """Delete every row belonging to a demo contact."""
    print("Connecting to Supabase...")
    sb = get_supabase()
    pattern = f"%@{DEMO_DOMAIN}"

    tickets = sb.table("support_tickets").select("id").like("contact_email", pattern).execute()
    ticket_ids = [row["id"] for row in tickets.data or []]
    if ticket_ids:
        resp = sb.table("support_messages").delete().in_("ticket_id", ticket_ids).execute()
        print(f"  Deleted {len(resp.data or [])} row(s) from support_messages")

    resp = sb.table("contact_messages").delete().like("email", pattern).execute()
    print(f"  Deleted {len(resp.data or [])} row(s) from contact_messages")
    resp = sb.table("support_tickets").delete().like("contact_email", pattern).execute()
    print(f"  Deleted {len(resp.data or [])} row(s) from support_tickets")

    print("\nDone! Demo inbox cleaned up.")


def main() -> None:
    parser = argparse.ArgumentParser(description="Seed or clean demo support inbox data")
    parser.add_argument("--clean", action="store_true", help="Remove demo data instead of inserting")
    args = parser.parse_args()

    if args.clean:
        clean()
    else:
        seed()


if __name__ == "__main__":
    main()
