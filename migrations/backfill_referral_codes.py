"""
Give every user without a referral code a unique one

Run with: python -m migrations.backfill_referral_codes
"""

from carehub.database import SessionLocal
from carehub.domain.referrals.service import ensure_user_referral_code
from carehub.models import User


def upgrade():
    db = SessionLocal()
    try:
        users = db.query(User).filter(User.referral_code.is_(None)).all()
        for user in users:
            ensure_user_referral_code(db, user)
        print(f"✅ Backfilled referral codes for {len(users)} user(s)")
    finally:
        db.close()


if __name__ == "__main__":
    upgrade()
