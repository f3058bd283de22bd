from __future__ import annotations

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class PaymentInitiateRequest(_CamelModel):
    purchase_type: str = Field(min_length=1, max_length=16, alias="type")
    item_id: str | None = Field(
        default=None,
        max_length=64,
        validation_alias=AliasChoices("itemId", "bundleId", "packageId", "item_id"),
    )
    user_id: str | None = Field(default=None, max_length=64, alias="userId")
    email: str | None = Field(default=None, max_length=320)
    first_name: str | None = Field(default=None, max_length=128, alias="firstName")


class PayUInitiateResponse(_CamelModel):
    success: bool = True
    transaction_id: str = Field(serialization_alias="transactionId")
    payment_id: str = Field(serialization_alias="paymentId")
    amount: str
    product_info: str = Field(serialization_alias="productInfo")
    first_name: str = Field(serialization_alias="firstName")
    email: str
    hash: str
    key: str
    udf1: str
    udf2: str
    udf3: str
    udf4: str
    udf5: str


class RazorpayOrderResponse(_CamelModel):
    success: bool = True
    order_id: str = Field(serialization_alias="orderId")
    payment_id: str = Field(serialization_alias="paymentId")
    amount: int
    currency: str
    key_id: str = Field(serialization_alias="keyId")
    description: str


class PayUVerifyRequest(_CamelModel):
    txnid: str = Field(min_length=1, max_length=96)
    status: str = Field(max_length=32)
    hash: str | None = None
    mihpayid: str | None = None
    amount: str | None = None
    productinfo: str | None = None
    firstname: str | None = None
    email: str | None = None
    key: str | None = None
    udf1: str | None = None
    udf2: str | None = None
    udf3: str | None = None
    udf4: str | None = None
    udf5: str | None = None


class RazorpayVerifyRequest(_CamelModel):
    razorpay_order_id: str | None = None
    razorpay_payment_id: str | None = None
    razorpay_signature: str | None = None
    user_id: str | None = Field(default=None, alias="userId")
    item_id: str | None = Field(
        default=None,
        validation_alias=AliasChoices("itemId", "bundleId", "packageId", "item_id"),
    )
    purchase_type: str | None = Field(default=None, alias="type")
    feature: str | None = None
    coins: str | int | None = None


class PaymentVerifyResponse(_CamelModel):
    success: bool
    payment_id: str = Field(serialization_alias="paymentId")
    status: str
    idempotent_replay: bool = Field(default=False, serialization_alias="idempotentReplay")
    user_id: str | None = Field(default=None, serialization_alias="userId")
    unlocked_features: dict[str, bool] | None = Field(
        default=None,
        serialization_alias="unlockedFeatures",
    )
    coins_credited: int = Field(default=0, serialization_alias="coinsCredited")
    coins: int | None = None
