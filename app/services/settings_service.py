import logging
from sqlalchemy.orm import Session
from app.core.config import settings
from app.models.setting import Setting

logger = logging.getLogger(__name__)

COMMISSION_KEY = "PLATFORM_COMMISSION_PERCENT"

def get_platform_commission_percent(db: Session) -> float:
    s = db.get(Setting, COMMISSION_KEY)
    if s and s.value:
        try:
            return float(s.value)
        except ValueError:
            logger.warning("Ignoring malformed setting", extra={"setting_key": COMMISSION_KEY, "value": s.value})
    return float(settings.PLATFORM_COMMISSION_PERCENT)

def set_platform_commission_percent(db: Session, percent: float, updated_by: str = "") -> float:
    if percent < 0 or percent > 100:
        raise ValueError("commission percent must be between 0 and 100")
    s = db.get(Setting, COMMISSION_KEY)
    if not s:
        s = Setting(key=COMMISSION_KEY, value=str(percent), updated_by=updated_by)
        db.add(s)
    else:
        s.value = str(percent)
        s.updated_by = updated_by
    db.commit()
    return float(percent)
