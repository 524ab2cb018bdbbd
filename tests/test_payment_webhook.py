"""Asaas notifications applied to simplified enrollments."""

from unittest.mock import Mock

import pytest

from app.models import SimplifiedEnrollmentStatus
from app.services.enrollment_converter import EnrollmentConverter
from app.services.payment_webhook import PaymentWebhookService, WebhookResult


@pytest.fixture
def converter():
    mock = Mock(spec=EnrollmentConverter)
    mock.sync_simplified_enrollment.return_value = True
    return mock


def payment_for(enrollment, **fields):
    payment = {"id": "pay_123", "status": "CONFIRMED", "value": "18000.00", "externalReference": enrollment.uuid}
    payment.update(fields)
    return payment


class TestConfirmedPayment:

    def test_confirms_and_converts(self, fake_repo, converter):
        course = fake_repo.add_course()
        enrollment = fake_repo.add_simplified(course.id, status=SimplifiedEnrollmentStatus.WAITING_PAYMENT.value)
        service = PaymentWebhookService(fake_repo, converter, auto_convert=True)

        result = service.handle_asaas_event("PAYMENT_CONFIRMED", payment_for(enrollment))

        assert result == WebhookResult.CONVERTED
        assert enrollment.status == SimplifiedEnrollmentStatus.PAYMENT_CONFIRMED.value
        assert enrollment.payment_external_id == "pay_123"
        converter.sync_simplified_enrollment.assert_called_once_with(enrollment.id)
        log = fake_repo.status_logs[-1]
        assert log.old_status == "waiting_payment"
        assert log.new_status == "payment_confirmed"
        assert log.gateway_data["id"] == "pay_123"
        assert fake_repo.commits == 1

    def test_received_matches_payment_external_id(self, fake_repo, converter):
        course = fake_repo.add_course()
        enrollment = fake_repo.add_simplified(
            course.id, status=SimplifiedEnrollmentStatus.WAITING_PAYMENT.value, payment_external_id="pay_999",
        )
        service = PaymentWebhookService(fake_repo, converter, auto_convert=True)

        result = service.handle_asaas_event("PAYMENT_RECEIVED", {"id": "pay_999", "externalReference": "pay_999"})

        assert result == WebhookResult.CONVERTED
        assert enrollment.status == SimplifiedEnrollmentStatus.PAYMENT_CONFIRMED.value

    def test_without_auto_convert_only_status_changes(self, fake_repo, converter):
        course = fake_repo.add_course()
        enrollment = fake_repo.add_simplified(course.id, status=SimplifiedEnrollmentStatus.PENDING.value)
        service = PaymentWebhookService(fake_repo, converter, auto_convert=False)

        result = service.handle_asaas_event("PAYMENT_CONFIRMED", payment_for(enrollment))

        assert result == WebhookResult.STATUS_UPDATED
        converter.sync_simplified_enrollment.assert_not_called()

    def test_conversion_failure_is_reported(self, fake_repo, converter):
        converter.sync_simplified_enrollment.return_value = False
        course = fake_repo.add_course()
        enrollment = fake_repo.add_simplified(course.id, status=SimplifiedEnrollmentStatus.PENDING.value)
        service = PaymentWebhookService(fake_repo, converter, auto_convert=True)

        assert service.handle_asaas_event("PAYMENT_CONFIRMED", payment_for(enrollment)) == WebhookResult.CONVERSION_FAILED
        assert enrollment.status == SimplifiedEnrollmentStatus.PAYMENT_CONFIRMED.value

    def test_redelivered_confirmation_is_already_processed(self, fake_repo, converter):
        course = fake_repo.add_course()
        enrollment = fake_repo.add_simplified(course.id)
        service = PaymentWebhookService(fake_repo, converter, auto_convert=True)

        result = service.handle_asaas_event("PAYMENT_CONFIRMED", payment_for(enrollment))

        assert result == WebhookResult.ALREADY_PROCESSED
        converter.sync_simplified_enrollment.assert_not_called()
        assert fake_repo.status_logs == []
        assert fake_repo.commits == 0


class TestOtherEvents:

    @pytest.mark.parametrize("event, expected_status", [
        ("PAYMENT_OVERDUE", SimplifiedEnrollmentStatus.WAITING_PAYMENT.value),
        ("PAYMENT_DELETED", SimplifiedEnrollmentStatus.CANCELLED.value),
        ("PAYMENT_REFUNDED", SimplifiedEnrollmentStatus.CANCELLED.value),
    ])
    def test_status_mapping(self, fake_repo, converter, event, expected_status):
        course = fake_repo.add_course()
        enrollment = fake_repo.add_simplified(course.id, status=SimplifiedEnrollmentStatus.PENDING.value)
        service = PaymentWebhookService(fake_repo, converter, auto_convert=True)

        assert service.handle_asaas_event(event, payment_for(enrollment)) == WebhookResult.STATUS_UPDATED
        assert enrollment.status == expected_status
        converter.sync_simplified_enrollment.assert_not_called()

    def test_converted_enrollment_is_left_alone(self, fake_repo, converter):
        course = fake_repo.add_course()
        enrollment = fake_repo.add_simplified(course.id, status=SimplifiedEnrollmentStatus.CONVERTED.value)
        service = PaymentWebhookService(fake_repo, converter, auto_convert=True)

        assert service.handle_asaas_event("PAYMENT_REFUNDED", payment_for(enrollment)) == WebhookResult.ALREADY_PROCESSED
        assert enrollment.status == SimplifiedEnrollmentStatus.CONVERTED.value
        assert fake_repo.status_logs == []

    def test_repeated_overdue_is_already_processed(self, fake_repo, converter):
        course = fake_repo.add_course()
        enrollment = fake_repo.add_simplified(course.id, status=SimplifiedEnrollmentStatus.WAITING_PAYMENT.value)
        service = PaymentWebhookService(fake_repo, converter, auto_convert=True)

        assert service.handle_asaas_event("PAYMENT_OVERDUE", payment_for(enrollment)) == WebhookResult.ALREADY_PROCESSED

    def test_unhandled_event(self, fake_repo, converter):
        course = fake_repo.add_course()
        enrollment = fake_repo.add_simplified(course.id, status=SimplifiedEnrollmentStatus.PENDING.value)
        service = PaymentWebhookService(fake_repo, converter, auto_convert=True)

        assert service.handle_asaas_event("PAYMENT_CREATED", payment_for(enrollment)) == WebhookResult.UNHANDLED_EVENT
        assert enrollment.status == SimplifiedEnrollmentStatus.PENDING.value

    def test_missing_reference_is_ignored(self, fake_repo, converter):
        service = PaymentWebhookService(fake_repo, converter, auto_convert=True)
        assert service.handle_asaas_event("PAYMENT_CONFIRMED", {"id": "pay_1"}) == WebhookResult.IGNORED

    def test_unknown_reference(self, fake_repo, converter):
        service = PaymentWebhookService(fake_repo, converter, auto_convert=True)
        result = service.handle_asaas_event("PAYMENT_CONFIRMED", {"id": "pay_1", "externalReference": "nope"})
        assert result == WebhookResult.NOT_FOUND
