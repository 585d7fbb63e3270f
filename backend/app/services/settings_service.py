# Overview: Service-layer operations for settings; tax rate and seeded defaults.

from __future__ import annotations

import logging
from decimal import Decimal, InvalidOperation

from flask import current_app

from ..errors import ValidationError
from ..extensions import db
from ..models import Setting
from ..models.settings import INVOICE_SEQUENCE_KEY, TAX_RATE_KEY

logger = logging.getLogger(__name__)

MAX_TAX_RATE = Decimal("100")


def parse_tax_rate(value) -> Decimal:
    """Coerce a percentage to Decimal and enforce 0 <= rate <= 100."""
    if isinstance(value, bool) or value is None:
        raise ValidationError("tax rate must be a number", details={"field": "tax_rate"})
    try:
        rate = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise ValidationError("tax rate must be a number", details={"field": "tax_rate"})
    if not rate.is_finite() or rate < 0 or rate > MAX_TAX_RATE:
        raise ValidationError(
            "tax rate must be between 0 and 100",
            details={"field": "tax_rate", "value": str(value)},
        )
    return rate


def get_setting_value(key: str, default: Decimal | None = None) -> Decimal | None:
    setting = db.session.query(Setting).filter_by(key=key).first()
    if setting is None:
        return default
    return Decimal(setting.value)


def get_tax_rate() -> Decimal:
    """Current sales tax percentage; 0 when never configured."""
    return get_setting_value(TAX_RATE_KEY, Decimal("0"))


def set_tax_rate(rate) -> Decimal:
    """Upsert the tax rate. Existing sales keep the rate they were created with."""
    parsed = parse_tax_rate(rate)
    setting = db.session.query(Setting).filter_by(key=TAX_RATE_KEY).first()
    if setting is None:
        setting = Setting(key=TAX_RATE_KEY, value=parsed)
        db.session.add(setting)
    else:
        setting.value = parsed
    db.session.commit()
    logger.info("Tax rate set to %s%%", parsed)
    return parsed


def get_invoice_sequence() -> int:
    value = get_setting_value(INVOICE_SEQUENCE_KEY, Decimal("0"))
    return int(value)


def ensure_default_settings(tax_rate=None) -> list[str]:
    """
    Seed invoiceSequence (0) and taxRate (config DEFAULT_TAX_RATE) if missing.

    Existing rows are never touched, so running this twice is harmless and the
    invoice counter is never reset. Returns the keys that were created.
    """
    if tax_rate is None:
        tax_rate = current_app.config.get("DEFAULT_TAX_RATE", "0")
    defaults = {
        INVOICE_SEQUENCE_KEY: Decimal("0"),
        TAX_RATE_KEY: parse_tax_rate(tax_rate),
    }
    existing = {
        key for (key,) in db.session.query(Setting.key).filter(Setting.key.in_(defaults)).all()
    }
    created = []
    for key, value in defaults.items():
        if key in existing:
            continue
        db.session.add(Setting(key=key, value=value))
        created.append(key)
    db.session.commit()
    return created
