"""Inbound payment event schema shared by the queue consumer and the HTTP API."""

from pydantic import BaseModel, ConfigDict, Field

from app.models.enums import PAYMENT_SUCCEEDED


class PaymentEvent(BaseModel):
    """A payment notification from upstream. JSON uses camelCase keys."""

    model_config = ConfigDict(populate_by_name=True)

    payment_id: str = Field(alias="paymentId", min_length=1)
    amount: float = Field(gt=0)
    currency: str
    customer_id: str = Field(alias="customerId", min_length=1)
    status: str
    provider_quote_id: str = Field(alias="providerQuoteId", min_length=1)

    @property
    def is_succeeded(self) -> bool:
        return self.status == PAYMENT_SUCCEEDED

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True)
