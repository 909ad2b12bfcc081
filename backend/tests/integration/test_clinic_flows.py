"""
Integration tests for clinic booking, treatments and billing.
"""

from datetime import datetime
from decimal import Decimal

import pytest

from reservations.core.exceptions import (
    AuditError,
    InvalidRequestError,
    InvalidTransitionError,
    NoSlotError,
    NotFoundError,
)
from reservations.domain.entities import (
    ActorKind,
    AppointmentStatus,
    BillPaymentStatus,
)

pytestmark = pytest.mark.clinic


def _slot(uow_factory, slot_id):
    with uow_factory() as uow:
        return uow.appointments.get_slot(slot_id)


class TestBooking:
    def test_booking_takes_the_slot(self, appointment_service, clinic, uow_factory):
        appointment_id = appointment_service.book_appointment(
            clinic.patient_id, clinic.doctor_id, clinic.slot_time
        )

        appointment = appointment_service.get_appointment(appointment_id)
        assert appointment.status is AppointmentStatus.SCHEDULED
        assert appointment.slot_id == clinic.slot_id
        assert appointment.appointment_date == clinic.slot_time
        assert _slot(uow_factory, clinic.slot_id).is_booked
        assert not _slot(uow_factory, clinic.later_slot_id).is_booked

    def test_booking_is_audited_against_the_patient(
        self, appointment_service, clinic, uow_factory
    ):
        appointment_id = appointment_service.book_appointment(
            clinic.patient_id, clinic.doctor_id, clinic.slot_time
        )

        with uow_factory() as uow:
            entries = uow.audit.list_entries(actor_kind=ActorKind.PATIENT)
        assert [(e.actor_id, e.action, e.entity_id) for e in entries] == [
            (clinic.patient_id, "BookAppointment", appointment_id)
        ]

    def test_slot_cannot_be_booked_twice(self, appointment_service, clinic):
        appointment_service.book_appointment(
            clinic.patient_id, clinic.doctor_id, clinic.slot_time
        )

        with pytest.raises(NoSlotError):
            appointment_service.book_appointment(
                clinic.other_patient_id, clinic.doctor_id, clinic.slot_time
            )

    def test_time_without_a_slot(self, appointment_service, clinic, uow_factory):
        with pytest.raises(NoSlotError):
            appointment_service.book_appointment(
                clinic.patient_id, clinic.doctor_id, datetime(2024, 6, 3, 10, 30)
            )

        with uow_factory() as uow:
            assert uow.audit.list_entries() == []

    def test_unknown_patient_rolls_back_the_slot(
        self, appointment_service, clinic, uow_factory
    ):
        with pytest.raises(AuditError):
            appointment_service.book_appointment(
                9999, clinic.doctor_id, clinic.slot_time
            )

        assert not _slot(uow_factory, clinic.slot_id).is_booked

    def test_open_slot_then_book(self, appointment_service, clinic):
        new_time = datetime(2024, 6, 4, 9, 0)
        slot_id = appointment_service.open_slot(clinic.doctor_id, new_time)

        appointment_id = appointment_service.book_appointment(
            clinic.patient_id, clinic.doctor_id, new_time
        )

        assert appointment_service.get_appointment(appointment_id).slot_id == slot_id

    def test_duplicate_slot_rejected(self, appointment_service, clinic):
        with pytest.raises(InvalidRequestError):
            appointment_service.open_slot(clinic.doctor_id, clinic.slot_time)

    def test_open_slot_for_unknown_doctor(self, appointment_service, clinic):
        with pytest.raises(NotFoundError):
            appointment_service.open_slot(9999, datetime(2024, 6, 4, 9, 0))


class TestLifecycle:
    def test_cancel_frees_the_slot(self, appointment_service, clinic, uow_factory):
        appointment_id = appointment_service.book_appointment(
            clinic.patient_id, clinic.doctor_id, clinic.slot_time
        )

        cancelled = appointment_service.cancel_appointment(appointment_id)

        assert cancelled.status is AppointmentStatus.CANCELLED
        assert not _slot(uow_factory, clinic.slot_id).is_booked
        # Freed slot can be booked again
        appointment_service.book_appointment(
            clinic.other_patient_id, clinic.doctor_id, clinic.slot_time
        )

    def test_completed_appointment_cannot_be_cancelled(
        self, appointment_service, clinic
    ):
        appointment_id = appointment_service.book_appointment(
            clinic.patient_id, clinic.doctor_id, clinic.slot_time
        )
        appointment_service.complete_appointment(appointment_id)

        with pytest.raises(InvalidTransitionError):
            appointment_service.cancel_appointment(appointment_id)

    def test_unknown_appointment(self, appointment_service, clinic):
        with pytest.raises(NotFoundError):
            appointment_service.cancel_appointment(9999)
        with pytest.raises(NotFoundError):
            appointment_service.add_treatment(9999, clinic.consultation_id)


class TestTreatmentsAndBilling:
    def test_treatments_update_billing_total(
        self, appointment_service, billing_service, clinic
    ):
        appointment_id = appointment_service.book_appointment(
            clinic.patient_id, clinic.doctor_id, clinic.slot_time
        )

        appointment_service.add_treatment(appointment_id, clinic.consultation_id)
        assert billing_service.get_billing_total(clinic.patient_id) == Decimal("500.00")

        appointment_service.add_treatment(
            appointment_id, clinic.xray_id, cost="1000.00", notes="Discounted"
        )
        assert billing_service.get_billing_total(clinic.patient_id) == Decimal("1500.00")

        treatments = appointment_service.list_treatments(appointment_id)
        assert [t.cost for t in treatments] == [Decimal("500.00"), Decimal("1000.00")]
        assert treatments[1].notes == "Discounted"

    def test_billing_total_spans_appointments(
        self, appointment_service, billing_service, clinic
    ):
        first = appointment_service.book_appointment(
            clinic.patient_id, clinic.doctor_id, clinic.slot_time
        )
        second = appointment_service.book_appointment(
            clinic.patient_id, clinic.doctor_id, clinic.later_slot_time
        )
        appointment_service.add_treatment(first, clinic.consultation_id)
        appointment_service.add_treatment(second, clinic.xray_id)

        assert billing_service.get_billing_total(clinic.patient_id) == Decimal("1700.00")
        assert billing_service.get_billing_total(clinic.other_patient_id) == Decimal(
            "0.00"
        )

    def test_treatment_on_cancelled_appointment_rejected(
        self, appointment_service, clinic
    ):
        appointment_id = appointment_service.book_appointment(
            clinic.patient_id, clinic.doctor_id, clinic.slot_time
        )
        appointment_service.cancel_appointment(appointment_id)

        with pytest.raises(InvalidRequestError):
            appointment_service.add_treatment(appointment_id, clinic.consultation_id)

    def test_book_with_treatment_in_one_step(
        self, appointment_service, billing_service, clinic
    ):
        appointment_id, treatment_id = (
            appointment_service.book_appointment_with_treatment(
                clinic.patient_id,
                clinic.doctor_id,
                clinic.slot_time,
                clinic.consultation_id,
            )
        )

        treatments = appointment_service.list_treatments(appointment_id)
        assert [t.id for t in treatments] == [treatment_id]
        assert billing_service.get_billing_total(clinic.patient_id) == Decimal("500.00")

    def test_book_with_unknown_treatment_type_keeps_slot_free(
        self, appointment_service, billing_service, clinic, uow_factory
    ):
        with pytest.raises(NotFoundError):
            appointment_service.book_appointment_with_treatment(
                clinic.patient_id, clinic.doctor_id, clinic.slot_time, 9999
            )

        assert not _slot(uow_factory, clinic.slot_id).is_booked
        assert billing_service.get_billing_total(clinic.patient_id) == Decimal("0.00")

    def test_generate_bill(self, appointment_service, billing_service, clinic):
        appointment_id = appointment_service.book_appointment(
            clinic.patient_id, clinic.doctor_id, clinic.slot_time
        )
        appointment_service.add_treatment(appointment_id, clinic.consultation_id)
        appointment_service.add_treatment(appointment_id, clinic.xray_id)

        bill_id = billing_service.generate_bill(clinic.patient_id)

        bills = billing_service.list_bills(clinic.patient_id)
        assert [b.id for b in bills] == [bill_id]
        assert bills[0].total_amount == Decimal("1700.00")
        assert bills[0].payment_status is BillPaymentStatus.PENDING

    def test_repeated_bills_carry_the_same_total(
        self, appointment_service, billing_service, clinic
    ):
        appointment_id = appointment_service.book_appointment(
            clinic.patient_id, clinic.doctor_id, clinic.slot_time
        )
        appointment_service.add_treatment(appointment_id, clinic.consultation_id)

        billing_service.generate_bill(clinic.patient_id)
        billing_service.generate_bill(clinic.patient_id)

        totals = [b.total_amount for b in billing_service.list_bills(clinic.patient_id)]
        assert totals == [Decimal("500.00"), Decimal("500.00")]

    def test_patient_without_treatments_gets_zero_bill(self, billing_service, clinic):
        billing_service.generate_bill(clinic.other_patient_id)

        bills = billing_service.list_bills(clinic.other_patient_id)
        assert bills[0].total_amount == Decimal("0.00")

    def test_bill_for_unknown_patient(self, billing_service, clinic):
        with pytest.raises(NotFoundError):
            billing_service.generate_bill(9999)
