"""
Campus Delivery: Checkout schemas
"""
from pydantic import BaseModel, ConfigDict, Field

ONLINE_PAYMENT = "Online Payment"
CASH_ON_DELIVERY = "Cash on Delivery"


class CheckoutRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    first_name: str = Field("", alias="firstName")
    last_name: str = Field("", alias="lastName")
    room: str = ""
    phone: str = ""
    email: str = ""
    gender: str = ""
    persons: int = 1
    payment_method: str = Field("", alias="paymentMethod")
    account_title: str = Field("", alias="accountTitle")
    bank_name: str = Field("", alias="bankName")
    # data URI or URL of the transfer receipt, required for online payment
    screenshot: str | None = None
    special_instruction: str = Field("", alias="specialInstruction")
    recaptcha_token: str = Field("", alias="recaptchaToken")


class CheckoutResponse(BaseModel):
    success: bool = True
    message: str = "Your order has been placed successfully."
    item_total: float
    delivery_charge: float
    grand_total: float
    screenshot_url: str = ""
    sheet_tab: str
    projection: str  # "submitted" | "queued" | "failed"
