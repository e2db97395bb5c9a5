"""Tests for the payment gateway adapters."""

import pytest

from shared.domain.exceptions import ServiceError

from apps.bookings.infrastructure.payments import SandboxPaymentGateway, StripePaymentGateway


def test_stripe_gateway_builds_without_key():
    assert StripePaymentGateway('').api_key == ''


@pytest.mark.asyncio
@pytest.mark.parametrize('call, args', [
    ('create_intent', (1000, 'USD', 'booking-1')),
    ('refund', ('pi_1', 'refund-1')),
    ('cancel_intent', ('pi_1',)),
])
async def test_stripe_calls_without_key_fail(call, args):
    gateway = StripePaymentGateway('')

    with pytest.raises(ServiceError) as exc:
        await getattr(gateway, call)(*args)

    assert exc.value.reason == 'payment_not_configured'
    assert exc.value.retryable


@pytest.mark.asyncio
async def test_sandbox_intents_are_idempotent_per_key():
    gateway = SandboxPaymentGateway()

    first = await gateway.create_intent(1000, 'usd', 'booking-1')
    again = await gateway.create_intent(1000, 'usd', 'booking-1')
    other = await gateway.create_intent(1000, 'usd', 'booking-2')

    assert first.id == again.id
    assert other.id != first.id
    assert first.currency == 'USD'


@pytest.mark.asyncio
async def test_sandbox_refund_is_idempotent_per_key():
    gateway = SandboxPaymentGateway()
    intent = await gateway.create_intent(1000, 'USD', 'booking-1')

    first = await gateway.refund(intent.id, 'refund-1')
    again = await gateway.refund(intent.id, 'refund-1')

    assert first == again
    assert first.payment_intent_id == intent.id
