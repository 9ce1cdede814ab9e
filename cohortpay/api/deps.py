from datetime import date

from fastapi import Depends
from sqlalchemy.orm import Session

from cohortpay.core.database import get_db
from cohortpay.services.catalog import SqlCatalog
from cohortpay.services.coupons import utc_today
from cohortpay.services.payments import PaymentGateway, build_payment_gateway


def get_today() -> date:
    return utc_today()


def get_catalog(db: Session = Depends(get_db)) -> SqlCatalog:
    return SqlCatalog(db)


def get_payment_gateway() -> PaymentGateway:
    return build_payment_gateway()
