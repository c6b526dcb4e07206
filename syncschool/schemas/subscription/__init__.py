from .requests import ConfirmPaymentRequest, InvoiceGenerateRequest, UpgradeRequest
from .responses import (
    InvoiceItemResponse,
    InvoiceResponse,
    PlanResponse,
    SubscriptionPaymentResponse,
    SubscriptionStatusResponse,
    UsageItem,
    UpgradeResponse,
    UsageResponse,
)
