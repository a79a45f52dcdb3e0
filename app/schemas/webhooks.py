from decimal import Decimal
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class PesapalIPN(BaseModel):
    # Same three fields whether Pesapal is configured for POST (JSON) or GET (query string).
    model_config = ConfigDict(str_strip_whitespace=True, extra="ignore")

    OrderTrackingId: str = Field(min_length=1)
    OrderMerchantReference: str = Field(min_length=1)
    OrderNotificationType: str = Field(min_length=1)  # IPNCHANGE | CALLBACKURL | RECURRING


class FlutterwaveCard(BaseModel):
    # The card token is deliberately not modelled so it can never be stored or logged.
    model_config = ConfigDict(extra="ignore")

    first_6digits: Optional[str] = None
    last_4digits: Optional[str] = None
    issuer: Optional[str] = None
    country: Optional[str] = None
    type: Optional[str] = None


class FlutterwaveChargeData(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True, extra="ignore")

    id: Union[int, str]
    tx_ref: str = Field(min_length=1)
    flw_ref: Optional[str] = None
    status: str = Field(min_length=1)
    amount: Decimal
    currency: str = Field(min_length=3, max_length=3)
    payment_type: str = ""
    processor_response: Optional[str] = None
    card: Optional[FlutterwaveCard] = None


class FlutterwaveWebhook(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True, extra="ignore")

    event: str = Field(min_length=1)  # charge.completed, charge.failed, transfer.completed, ...
    data: FlutterwaveChargeData

