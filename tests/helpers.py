"""
Small helpers shared by the test modules
"""
from datetime import date

from mfg_erp.extensions import db
from mfg_erp.models import Inventory

TODAY = date.today().isoformat()


def inventory_qty(product_id, location):
    row = Inventory.query.filter_by(product_id=product_id, location=location).first()
    return row.quantity if row else 0


def refreshed(instance):
    db.session.refresh(instance)
    return instance
