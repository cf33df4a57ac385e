"""
Seed the default subscription plans

Creates Basic (default, trial), Professional and Clinic plans when no plan
with the same name exists. A limit of NULL means unlimited.

Run with: python -m migrations.seed_subscription_plans [downgrade]
"""

import sys

from carehub.database import SessionLocal
from carehub.models import SubscriptionPlan

PLANS = [
    {
        "name": "Basic",
        "description": "For doctors getting started with remote follow-up",
        "price": 0,
        "billing_cycle": "MONTHLY",
        "max_doctors": 1,
        "max_patients": 30,
        "max_protocols": 10,
        "max_courses": 3,
        "trial_days": 30,
        "is_default": True,
    },
    {
        "name": "Professional",
        "description": "For busy practices",
        "price": 99,
        "billing_cycle": "MONTHLY",
        "max_doctors": 3,
        "max_patients": 300,
        "max_protocols": 100,
        "max_courses": 30,
        "trial_days": 14,
        "is_default": False,
    },
    {
        "name": "Clinic",
        "description": "Unlimited patients, protocols and courses",
        "price": 299,
        "billing_cycle": "MONTHLY",
        "max_doctors": 20,
        "max_patients": None,
        "max_protocols": None,
        "max_courses": None,
        "trial_days": 14,
        "is_default": False,
    },
]


def upgrade():
    """Insert missing plans"""
    db = SessionLocal()
    try:
        for data in PLANS:
            if db.query(SubscriptionPlan).filter(SubscriptionPlan.name == data["name"]).first():
                print(f"ℹ️  Plan {data['name']} already exists")
                continue
            db.add(SubscriptionPlan(**data))
            print(f"✅ Added plan {data['name']}")
        db.commit()
    finally:
        db.close()


def downgrade():
    """Remove the seeded plans that no subscription uses"""
    db = SessionLocal()
    try:
        for data in PLANS:
            plan = db.query(SubscriptionPlan).filter(SubscriptionPlan.name == data["name"]).first()
            if not plan:
                continue
            if plan.subscriptions:
                print(f"⚠️  Plan {plan.name} is in use, skipping")
                continue
            db.delete(plan)
            print(f"🗑️ Removed plan {plan.name}")
        db.commit()
    finally:
        db.close()


if __name__ == "__main__":
    if len(sys.argv) > 1 and sys.argv[1] == "downgrade":
        downgrade()
    else:
        upgrade()
