"""Demo records for local development.

Used to seed the in-memory store (SEED_DEMO_DATA=true) and by
scripts/seed_demo_data.py to populate a SQL database. Ids are fixed so the
deals can point at their contacts.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from typing import Any

from src.crm.records.schemas import EntityKind

DEMO_CONTACTS: list[dict[str, Any]] = [
    {"id": 1, "first_name": "Sarah", "last_name": "Johnson", "email": "sarah.johnson@techcorp.com",
     "phone": "+1 (555) 123-4567", "company": "TechCorp Solutions", "position": "VP of Sales"},
    {"id": 2, "first_name": "Michael", "last_name": "Chen", "email": "m.chen@innovate.io",
     "phone": "+1 (555) 234-5678", "company": "Innovate.io", "position": "CTO"},
    {"id": 3, "first_name": "Emily", "last_name": "Rodriguez", "email": "emily.r@globalind.com",
     "phone": "+1 (555) 345-6789", "company": "Global Industries", "position": "Procurement Manager"},
    {"id": 4, "first_name": "David", "last_name": "Thompson", "email": "dthompson@startupxyz.com",
     "phone": "+1 (555) 456-7890", "company": "StartupXYZ", "position": "Founder & CEO"},
]

DEMO_DEALS: list[dict[str, Any]] = [
    {"id": 1, "title": "Enterprise Software License", "value": 125000, "stage": "proposal",
     "probability": 60, "contact_id": 1, "description": "Annual license for 500 seats"},
    {"id": 2, "title": "Cloud Migration Project", "value": 85000, "stage": "negotiation",
     "probability": 75, "contact_id": 2, "description": "Migrate on-prem workloads to the cloud"},
    {"id": 3, "title": "Supply Chain Platform", "value": 200000, "stage": "qualified",
     "probability": 40, "contact_id": 3, "description": None},
    {"id": 4, "title": "Startup Growth Package", "value": 15000, "stage": "lead",
     "probability": 10, "contact_id": 4, "description": "Starter tier with onboarding"},
    {"id": 5, "title": "Security Audit Services", "value": 45000, "stage": "closed-won",
     "probability": 100, "contact_id": 1, "description": None},
    {"id": 6, "title": "Analytics Dashboard Add-on", "value": 22000, "stage": "closed-lost",
     "probability": 0, "contact_id": 2, "description": "Lost to an in-house build"},
]

DEMO_TASKS: list[dict[str, Any]] = [
    {"id": 1, "title": "Send revised proposal", "priority": "high", "status": "pending",
     "contact_id": 1, "deal_id": 1, "due_offset_days": 2},
    {"id": 2, "title": "Schedule technical review", "priority": "medium", "status": "in-progress",
     "contact_id": 2, "deal_id": 2, "due_offset_days": 5},
    {"id": 3, "title": "Intro call follow-up", "priority": "low", "status": "completed",
     "contact_id": 4, "deal_id": 4, "due_offset_days": -1},
]

DEMO_ACTIVITIES: list[dict[str, Any]] = [
    {"id": 1, "type": "call", "subject": "Discovery call", "description": "Discussed seat count and timeline",
     "contact_id": 1, "deal_id": 1},
    {"id": 2, "type": "email", "subject": "Pricing sent", "description": "Shared volume pricing tiers",
     "contact_id": 2, "deal_id": 2},
    {"id": 3, "type": "meeting", "subject": "On-site workshop", "description": "Mapped current supply chain flow",
     "contact_id": 3, "deal_id": 3},
]


def demo_seed(today: date | None = None) -> dict[EntityKind, list[dict[str, Any]]]:
    """Demo records keyed by kind, with dates relative to today."""
    today = today or date.today()
    now = datetime.now(timezone.utc)

    contacts = [{**c, "created_at": now, "last_activity": now} for c in DEMO_CONTACTS]
    deals = [
        {**d, "expected_close_date": today + timedelta(days=15 * d["id"]), "created_at": now, "updated_at": now}
        for d in DEMO_DEALS
    ]
    tasks = []
    for task in DEMO_TASKS:
        row = {k: v for k, v in task.items() if k != "due_offset_days"}
        row["due_date"] = today + timedelta(days=task["due_offset_days"])
        row["created_at"] = now
        tasks.append(row)
    activities = [
        {**a, "created_at": now - timedelta(hours=a["id"])} for a in DEMO_ACTIVITIES
    ]

    return {
        EntityKind.CONTACT: contacts,
        EntityKind.DEAL: deals,
        EntityKind.TASK: tasks,
        EntityKind.ACTIVITY: activities,
    }
