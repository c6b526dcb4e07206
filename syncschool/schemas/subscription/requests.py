from typing import Optional

from syncschool.schemas.common import APIModel
from syncschool.schemas.enums import BillingCycle


class UpgradeRequest(APIModel):
    plan_id: int
    billing_cycle: BillingCycle = BillingCycle.MONTHLY
    payment_method: Optional[str] = None


class ConfirmPaymentRequest(APIModel):
    external_ref: Optional[str] = None


class InvoiceGenerateRequest(APIModel):
    subscription_payment_id: int
    notes: Optional[str] = None
