from __future__ import annotations

from .fulfill import fulfill
from .initiate import initiate_payu, initiate_razorpay
from .records import enqueue_payment_record_retry, persist_created_payment, store_created_payment
from .verify import PayUCallback, RazorpayCallback, verify_payu, verify_razorpay


class PaymentService:
    initiate_payu = staticmethod(initiate_payu)
    initiate_razorpay = staticmethod(initiate_razorpay)
    persist_created_payment = staticmethod(persist_created_payment)
    store_created_payment = staticmethod(store_created_payment)
    enqueue_payment_record_retry = staticmethod(enqueue_payment_record_retry)
    verify_payu = staticmethod(verify_payu)
    verify_razorpay = staticmethod(verify_razorpay)
    fulfill = staticmethod(fulfill)


__all__ = [
    "PaymentService",
    "PayUCallback",
    "RazorpayCallback",
]
