from pydantic import BaseModel
from typing import Optional, List


class PaymentOut(BaseModel):
    id: str
    provider: str
    reference: str
    amount: str
    currency: str
    paymentType: str
    status: str
    method: Optional[str] = None
    statusMessage: str = ""
    completedAt: Optional[str] = None


class PaymentStatusOut(BaseModel):
    bookingRef: str
    bookingStatus: str
    paymentStatus: str
    balancePaidAt: Optional[str] = None
    payments: List[PaymentOut] = []


class PesapalCallbackOut(BaseModel):
    success: bool
    paymentId: str
    bookingRef: str
    paymentStatus: str
    bookingStatus: str
    bookingPaymentStatus: str
    updated: bool
    message: str
