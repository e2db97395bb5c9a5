"""Integration tests for booking API endpoints."""

from __future__ import annotations

from datetime import date, timedelta

from django.contrib.auth import get_user_model
from django.test import override_settings
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APITestCase

from apps.bookings import services
from apps.bookings.models import Booking
from apps.resources.models import Resource

User = get_user_model()


class BookingAPITests(APITestCase):
    """Covers creation, conflicts, status changes and cancellation."""

    def setUp(self) -> None:
        self.guest = User.objects.create_user(username="guest", password="GuestPass123")
        self.owner = User.objects.create_user(username="owner", password="OwnerPass123")
        self.admin = User.objects.create_user(username="admin", password="AdminPass123", is_staff=True)
        self.room = Resource.objects.create(
            owner=self.owner,
            kind=Resource.Kind.HOTEL_ROOM,
            title="Deluxe double",
            city="Almaty",
            currency="USD",
            capacity=1,
            max_occupancy=2,
            pricing={"base_price": "100.00", "tax_rate": "10"},
        )
        self.client.force_authenticate(self.guest)
        self.list_url = reverse("booking-list")
        self.check_in = date.today() + timedelta(days=5)

    def _payload(self, check_in: date, nights: int = 2, **extra) -> dict:
        payload = {
            "resource": str(self.room.id),
            "start_date": str(check_in),
            "end_date": str(check_in + timedelta(days=nights)),
            "adults": 2,
        }
        payload.update(extra)
        return payload

    def _create(self) -> dict:
        response = self.client.post(self.list_url, self._payload(self.check_in), format="json")
        self.assertEqual(response.status_code, status.HTTP_201_CREATED, response.data)
        return response.data

    def _post(self, user, name: str, booking_id, data=None):
        self.client.force_authenticate(user)
        return self.client.post(reverse(name, kwargs={"pk": booking_id}), data or {}, format="json")

    def test_guest_can_create_booking(self) -> None:
        data = self._create()

        self.assertEqual(data["status"], Booking.Status.PENDING)
        self.assertEqual(data["payment_status"], Booking.PaymentStatus.PENDING)
        self.assertTrue(data["payment_client_secret"])
        self.assertEqual(data["total_amount"], "220.00")
        self.assertEqual(data["price_breakdown"]["total_minor"], 22000)
        self.assertEqual(Booking.objects.count(), 1)
        booking = Booking.objects.get()
        self.assertEqual(booking.user, self.guest)
        self.assertEqual(booking.resource, self.room)
        self.assertTrue(booking.payment_intent_id)

    def test_prevent_double_booking_on_overlap(self) -> None:
        self._create()

        response = self.client.post(
            self.list_url,
            self._payload(self.check_in + timedelta(days=1)),
            format="json",
        )

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST, response.data)
        self.assertEqual(response.data["reason"], "not_available")
        self.assertEqual(response.data["detail"], "Resource not available for selected dates")
        self.assertFalse(response.data["retryable"])
        self.assertEqual(Booking.objects.count(), 1)

    def test_adjacent_booking_is_allowed(self) -> None:
        self._create()
        response = self.client.post(
            self.list_url,
            self._payload(self.check_in + timedelta(days=2)),
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_201_CREATED, response.data)

    def test_invalid_dates_are_rejected(self) -> None:
        payload = self._payload(self.check_in)
        payload["end_date"] = str(self.check_in)

        response = self.client.post(self.list_url, payload, format="json")

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data["reason"], "invalid_request")
        self.assertIn("end_date", response.data["errors"])

    def test_too_many_guests(self) -> None:
        response = self.client.post(self.list_url, self._payload(self.check_in, adults=3), format="json")
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data["reason"], "max_occupancy")

    def test_unknown_resource(self) -> None:
        payload = self._payload(self.check_in)
        payload["resource"] = "00000000-0000-0000-0000-000000000000"

        response = self.client.post(self.list_url, payload, format="json")

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data["reason"], "resource_not_found")

    def test_anonymous_cannot_book(self) -> None:
        self.client.force_authenticate(None)
        response = self.client.post(self.list_url, self._payload(self.check_in), format="json")
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertEqual(Booking.objects.count(), 0)

    def test_guest_can_cancel_pending_booking(self) -> None:
        booking = self._create()

        response = self._post(self.guest, "booking-cancel", booking["id"], {"reason": "Plans changed"})

        self.assertEqual(response.status_code, status.HTTP_200_OK, response.data)
        self.assertEqual(response.data["status"], Booking.Status.CANCELLED)
        self.assertEqual(response.data["payment_status"], Booking.PaymentStatus.CANCELLED)
        self.assertEqual(response.data["cancelled_by"], Booking.CancelledBy.REQUESTER)

        # The room is free again
        self.client.force_authenticate(self.guest)
        response = self.client.post(self.list_url, self._payload(self.check_in), format="json")
        self.assertEqual(response.status_code, status.HTTP_201_CREATED, response.data)

    def test_owner_moves_booking_forward(self) -> None:
        booking = self._create()

        response = self._post(self.owner, "booking-change-status", booking["id"], {"status": "confirmed"})
        self.assertEqual(response.status_code, status.HTTP_200_OK, response.data)
        self.assertEqual(response.data["status"], Booking.Status.CONFIRMED)

        response = self._post(self.owner, "booking-change-status", booking["id"], {"status": "checked_in"})
        self.assertEqual(response.data["status"], Booking.Status.CHECKED_IN)

    def test_guest_cannot_move_booking_forward(self) -> None:
        booking = self._create()

        response = self._post(self.guest, "booking-change-status", booking["id"], {"status": "confirmed"})

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(response.data["reason"], "requester_cannot_change_status")

    def test_owner_cannot_cancel(self) -> None:
        booking = self._create()

        response = self._post(self.owner, "booking-cancel", booking["id"])

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(response.data["reason"], "owner_cannot_cancel")

    def test_guest_cannot_cancel_after_check_in(self) -> None:
        booking = self._create()
        self._post(self.owner, "booking-change-status", booking["id"], {"status": "confirmed"})
        self._post(self.owner, "booking-change-status", booking["id"], {"status": "checked_in"})

        response = self._post(self.guest, "booking-cancel", booking["id"])

        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(response.data["reason"], "not_cancellable")
        self.assertEqual(Booking.objects.get().status, Booking.Status.CHECKED_IN)

    def test_paid_booking_is_refunded_once_on_cancel(self) -> None:
        booking = self._create()

        response = self._post(self.admin, "booking-confirm-payment", booking["id"])
        self.assertEqual(response.status_code, status.HTTP_200_OK, response.data)
        self.assertEqual(response.data["payment_status"], Booking.PaymentStatus.PAID)
        self.assertEqual(response.data["status"], Booking.Status.CONFIRMED)

        response = self._post(self.guest, "booking-cancel", booking["id"])
        self.assertEqual(response.status_code, status.HTTP_200_OK, response.data)
        self.assertEqual(response.data["payment_status"], Booking.PaymentStatus.REFUNDED)
        refund_id = Booking.objects.get().refund_id
        self.assertTrue(refund_id)

        response = self._post(self.guest, "booking-cancel", booking["id"])
        self.assertEqual(response.status_code, status.HTTP_200_OK, response.data)
        self.assertEqual(Booking.objects.get().refund_id, refund_id)

    def test_only_staff_confirm_payments(self) -> None:
        booking = self._create()
        response = self._post(self.owner, "booking-confirm-payment", booking["id"])
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_bookings_are_visible_to_guest_and_owner_only(self) -> None:
        booking = self._create()

        for user, expected in ((self.guest, 1), (self.owner, 1), (self.admin, 1)):
            self.client.force_authenticate(user)
            response = self.client.get(self.list_url)
            self.assertEqual(response.status_code, status.HTTP_200_OK)
            self.assertEqual(response.data["count"], expected)

        stranger = User.objects.create_user(username="stranger", password="StrangerPass123")
        self.client.force_authenticate(stranger)
        self.assertEqual(self.client.get(self.list_url).data["count"], 0)
        response = self.client.get(reverse("booking-detail", kwargs={"pk": booking["id"]}))
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data["reason"], "not_found")

    def test_filter_by_status(self) -> None:
        booking = self._create()
        self._post(self.guest, "booking-cancel", booking["id"])

        response = self.client.get(self.list_url, {"status": "pending"})
        self.assertEqual(response.data["count"], 0)
        response = self.client.get(self.list_url, {"status": "cancelled"})
        self.assertEqual(response.data["count"], 1)


@override_settings(PAYMENTS_SANDBOX=False, STRIPE_SECRET_KEY="")
class UnconfiguredPaymentsTests(APITestCase):
    """Without a Stripe key only requests that reach the processor fail."""

    def setUp(self) -> None:
        services.get_payment_gateway.cache_clear()
        self.addCleanup(services.get_payment_gateway.cache_clear)
        self.guest = User.objects.create_user(username="guest", password="GuestPass123")
        owner = User.objects.create_user(username="owner", password="OwnerPass123")
        self.room = Resource.objects.create(
            owner=owner,
            kind=Resource.Kind.HOTEL_ROOM,
            title="Twin room",
            capacity=1,
            max_occupancy=2,
            pricing={"base_price": "80.00"},
        )
        self.client.force_authenticate(self.guest)
        self.list_url = reverse("booking-list")
        start = date.today() + timedelta(days=5)
        self.payload = {
            "resource": str(self.room.id),
            "start_date": str(start),
            "end_date": str(start + timedelta(days=2)),
        }

    def test_rule_violation_is_still_a_bad_request(self) -> None:
        response = self.client.post(self.list_url, {**self.payload, "adults": 3}, format="json")
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST, response.data)
        self.assertEqual(response.data["reason"], "max_occupancy")

    def test_unknown_resource_is_still_not_found(self) -> None:
        payload = {**self.payload, "resource": "00000000-0000-0000-0000-000000000000"}
        response = self.client.post(self.list_url, payload, format="json")
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND, response.data)

    def test_valid_request_reports_missing_configuration(self) -> None:
        response = self.client.post(self.list_url, self.payload, format="json")

        self.assertEqual(response.status_code, status.HTTP_503_SERVICE_UNAVAILABLE, response.data)
        self.assertEqual(response.data["reason"], "payment_not_configured")
        self.assertTrue(response.data["retryable"])
        self.assertEqual(Booking.objects.count(), 0)
