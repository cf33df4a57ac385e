from pathlib import Path

import pytest
from sqlalchemy import inspect

import run_migration
from carehub.domain.clinics.service import ensure_doctor_has_clinic
from carehub.models import ClinicSubscription, SubscriptionPlan, User
from migrations import backfill_referral_codes, seed_subscription_plans

from conftest import TestingSessionLocal, engine

MIGRATIONS_DIR = Path(__file__).resolve().parent.parent / "migrations"


@pytest.fixture
def test_sessions(monkeypatch):
    monkeypatch.setattr(seed_subscription_plans, "SessionLocal", TestingSessionLocal)
    monkeypatch.setattr(backfill_referral_codes, "SessionLocal", TestingSessionLocal)


def test_split_statements_drops_comments():
    sql = "-- header\nCREATE TABLE a (id int);\n\n-- note\nCREATE INDEX ix ON a (id);\n;"
    assert run_migration.split_statements(sql) == ["CREATE TABLE a (id int)", "CREATE INDEX ix ON a (id)"]


def test_index_migration_is_rerunnable(db, monkeypatch):
    monkeypatch.setattr(run_migration, "engine", engine)
    path = str(MIGRATIONS_DIR / "001_add_composite_indexes.sql")

    run_migration.run_migration(path)
    run_migration.run_migration(path)

    names = {ix["name"] for ix in inspect(engine).get_indexes("symptom_reports")}
    assert "ix_symptom_reports_user_status" in names


def test_missing_migration_file_exits():
    with pytest.raises(SystemExit):
        run_migration.run_migration("does-not-exist.sql")


def test_seed_plans_is_idempotent(db, test_sessions):
    seed_subscription_plans.upgrade()
    seed_subscription_plans.upgrade()

    plans = db.query(SubscriptionPlan).order_by(SubscriptionPlan.price).all()
    assert [p.name for p in plans] == ["Basic", "Professional", "Clinic"]
    assert [p.name for p in plans if p.is_default] == ["Basic"]
    assert plans[-1].max_patients is None


def test_downgrade_keeps_plans_in_use(db, test_sessions, make_user):
    seed_subscription_plans.upgrade()
    basic = db.query(SubscriptionPlan).filter(SubscriptionPlan.name == "Basic").one()

    ensure_doctor_has_clinic(make_user("doc@example.com", role="DOCTOR"), db)
    assert db.query(ClinicSubscription).one().plan_id == basic.id

    seed_subscription_plans.downgrade()
    db.expire_all()
    assert [p.name for p in db.query(SubscriptionPlan).all()] == ["Basic"]


def test_backfill_referral_codes(db, test_sessions, make_user):
    make_user("a@example.com")
    make_user("b@example.com", referral_code="KEEP01")

    backfill_referral_codes.upgrade()

    db.expire_all()
    codes = {u.email: u.referral_code for u in db.query(User).all()}
    assert codes["b@example.com"] == "KEEP01"
    assert len(codes["a@example.com"]) == 6
