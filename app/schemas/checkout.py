from typing import Optional
from pydantic import BaseModel, constr, model_validator

Required = constr(strip_whitespace=True, min_length=1)


class AddressForm(BaseModel):
    """Either an existing ``address_id`` or a complete fresh address."""

    address_id: Optional[str] = None
    street: Optional[Required] = None
    city: Optional[Required] = None
    postal_code: Optional[Required] = None
    phone: Optional[Required] = None
    label: Optional[constr(strip_whitespace=True, max_length=50)] = None

    @model_validator(mode="after")
    def _address_or_fields(self):
        if self.address_id:
            return self
        missing = [f for f in ("street", "city", "postal_code", "phone") if not getattr(self, f)]
        if missing:
            raise ValueError(f"missing address fields: {', '.join(missing)}")
        return self


class PaymentForm(BaseModel):
    card_number: Required
    expiry: Required
    cvc: Required
