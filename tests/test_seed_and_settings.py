import pytest

from app.models.booking import Booking
from app.models.payment import Payment
from app.models.setting import Setting
from app.seed import run as run_seed
from app.services.settings_service import COMMISSION_KEY, get_platform_commission_percent, set_platform_commission_percent


def test_seed_is_idempotent(db):
    run_seed(db)
    run_seed(db)

    assert db.query(Booking).count() == 2
    assert db.query(Payment).count() == 3
    assert db.get(Setting, COMMISSION_KEY).value == "12.0"
    bal = db.query(Payment).filter(Payment.provider_ref == "SP-DEMO02-BAL").one()
    assert bal.payment_type == "BALANCE"
    assert bal.status == "PENDING"


def test_commission_setting(db):
    assert get_platform_commission_percent(db) == 12.0

    set_platform_commission_percent(db, 10, updated_by="admin")
    assert get_platform_commission_percent(db) == 10.0

    with pytest.raises(ValueError):
        set_platform_commission_percent(db, 150)


def test_malformed_commission_setting_falls_back(db):
    db.add(Setting(key=COMMISSION_KEY, value="twelve"))
    db.commit()
    assert get_platform_commission_percent(db) == 12.0
