"""
Payment gateway adapters

- StripePaymentGateway: PaymentIntents and Refunds through the stripe SDK
- SandboxPaymentGateway: emulated intents for development and tests,
  enabled with PAYMENTS_SANDBOX (no network calls)

The stripe SDK is synchronous; calls run in a worker thread so the
caller's timeout can interrupt the wait.
"""

from typing import Dict
from uuid import uuid4
import logging

import stripe  # type: ignore
from asgiref.sync import sync_to_async  # type: ignore

from shared.domain.exceptions import RefundError, ServiceError

from apps.bookings.application.ports import PaymentGateway, PaymentIntent, Refund

logger = logging.getLogger(__name__)


class StripePaymentGateway(PaymentGateway):
    """
    Stripe adapter

    A missing API key is reported when a payment call is made, so
    requests that never reach the processor are unaffected.
    """

    def __init__(self, api_key: str):
        self.api_key = api_key

    def _require_key(self):
        if not self.api_key:
            logger.error("Stripe call attempted without STRIPE_SECRET_KEY")
            raise ServiceError("Payments are not configured", reason='payment_not_configured')

    async def create_intent(self, amount_minor, currency, idempotency_key, metadata=None):
        self._require_key()
        logger.info(f"Creating Stripe payment intent: {amount_minor} {currency} ({idempotency_key})")
        try:
            intent = await sync_to_async(stripe.PaymentIntent.create, thread_sensitive=False)(
                amount=amount_minor,
                currency=currency.lower(),
                metadata=metadata or {},
                automatic_payment_methods={'enabled': True},
                idempotency_key=idempotency_key,
                api_key=self.api_key,
            )
        except stripe.StripeError as e:
            logger.error(f"Stripe error creating payment intent: {e}")
            raise ServiceError("Payment processing failed. Please retry.", reason='payment_provider_error')

        return PaymentIntent(
            id=intent.id,
            amount_minor=intent.amount,
            currency=currency.upper(),
            status=intent.status,
            client_secret=intent.client_secret or '',
            metadata=dict(metadata or {}),
        )

    async def refund(self, payment_intent_id, idempotency_key):
        self._require_key()
        logger.info(f"Refunding Stripe payment intent {payment_intent_id} ({idempotency_key})")
        try:
            refund = await sync_to_async(stripe.Refund.create, thread_sensitive=False)(
                payment_intent=payment_intent_id,
                idempotency_key=idempotency_key,
                api_key=self.api_key,
            )
        except stripe.StripeError as e:
            logger.error(f"Stripe refund error for {payment_intent_id}: {e}")
            raise RefundError("Failed to process refund. Please contact support.")

        return Refund(id=refund.id, payment_intent_id=payment_intent_id, status=refund.status)

    async def cancel_intent(self, payment_intent_id):
        self._require_key()
        logger.info(f"Cancelling Stripe payment intent {payment_intent_id}")
        try:
            await sync_to_async(stripe.PaymentIntent.cancel, thread_sensitive=False)(
                payment_intent_id,
                api_key=self.api_key,
            )
        except stripe.StripeError as e:
            logger.error(f"Stripe error cancelling payment intent {payment_intent_id}: {e}")
            raise ServiceError("Payment processing failed. Please retry.", reason='payment_provider_error')


class SandboxPaymentGateway(PaymentGateway):
    """
    Emulated payment processor

    Intents are kept in memory. Refunds always succeed and are
    idempotent per key, like the real processor.
    """

    def __init__(self):
        self.intents: Dict[str, PaymentIntent] = {}
        self.refunds: Dict[str, Refund] = {}
        self._keys: Dict[str, str] = {}

    async def create_intent(self, amount_minor, currency, idempotency_key, metadata=None):
        if idempotency_key in self._keys:
            return self.intents[self._keys[idempotency_key]]

        intent_id = f"pi_sandbox_{uuid4().hex[:16]}"
        intent = PaymentIntent(
            id=intent_id,
            amount_minor=amount_minor,
            currency=currency.upper(),
            client_secret=f"{intent_id}_secret_{uuid4().hex[:8]}",
            metadata=dict(metadata or {}),
        )
        self.intents[intent_id] = intent
        self._keys[idempotency_key] = intent_id
        logger.warning(f"Sandbox payment intent created: {intent_id} for {amount_minor} {currency}")
        return intent

    async def refund(self, payment_intent_id, idempotency_key):
        if idempotency_key in self.refunds:
            return self.refunds[idempotency_key]
        refund = Refund(id=f"re_sandbox_{uuid4().hex[:16]}", payment_intent_id=payment_intent_id)
        self.refunds[idempotency_key] = refund
        logger.warning(f"Sandbox refund created: {refund.id} for {payment_intent_id}")
        return refund

    async def cancel_intent(self, payment_intent_id):
        intent = self.intents.get(payment_intent_id)
        if intent is not None:
            self.intents[payment_intent_id] = PaymentIntent(
                id=intent.id,
                amount_minor=intent.amount_minor,
                currency=intent.currency,
                status='canceled',
                client_secret=intent.client_secret,
                metadata=intent.metadata,
            )
