# scripts/seed.py
"""
Seed demo users, tickets and comments.

    python -m scripts.seed

Existing users (matched by email) are left alone.
"""
from helpdesk_mini.backend.app.db import SessionLocal, init_db
from helpdesk_mini.backend.app.models.user import User
from helpdesk_mini.backend.app.services import comments, identity, tickets

DEMO_USERS = [
    ("john_user", "john@example.com", "password123", "user"),
    ("jane_agent", "jane@example.com", "password123", "agent"),
    ("admin_user", "admin@mail.com", "admin123", "admin"),
]

DEMO_TICKETS = [
    ("Login Issue", "Cannot log in to the portal since this morning.", "high"),
    ("Printer not working", "Third floor printer shows a paper jam error.", "medium"),
    ("Request new laptop", "Current laptop battery lasts under an hour.", "low"),
]


def seed() -> None:
    init_db()
    db = SessionLocal()
    try:
        users = {}
        for username, email, password, role in DEMO_USERS:
            user = db.query(User).filter_by(email=email).first()
            if user is None:
                user, _ = identity.register(db, username, email, password, role)
                print(f"[SEED] Created {role} {email}")
            users[role] = user

        if not tickets.list_tickets(db, users["user"], limit=1)[0]:
            for title, description, priority in DEMO_TICKETS:
                ticket = tickets.create_ticket(
                    db, users["user"], title, description, priority
                )
                comments.add_comment(
                    db, ticket.id, users["agent"], "Thanks, we are looking into it."
                )
            print(f"[SEED] Created {len(DEMO_TICKETS)} tickets")
    finally:
        db.close()


if __name__ == "__main__":
    seed()
