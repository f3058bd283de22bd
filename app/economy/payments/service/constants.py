from __future__ import annotations

CURRENCY = "INR"
DEFAULT_FIRST_NAME = "Customer"
DEFAULT_EMAIL = "customer@astrorekha.com"
GATEWAY_PAYU = "PAYU"
GATEWAY_RAZORPAY = "RAZORPAY"
PAYU_SUCCESS_STATUS = "success"
PERSIST_PAYMENT_TASK = "app.workers.tasks.payments_reliability.persist_payment_record"
