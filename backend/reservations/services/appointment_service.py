"""
Appointment service - clinic orchestration of slot reservations.
"""

import logging
from datetime import datetime
from decimal import Decimal
from typing import Callable, List, Optional, Tuple

from reservations.core.exceptions import (
    InvalidRequestError,
    InvalidTransitionError,
    NotFoundError,
)
from reservations.db.unit_of_work import UnitOfWork
from reservations.domain.entities import (
    ActorKind,
    Appointment,
    AppointmentStatus,
    DoctorSlot,
    Treatment,
)
from reservations.schemas.dtos import AddTreatmentRequest, BookAppointmentRequest

from .aggregate_service import AggregateMaintainer
from .audit_service import AuditLogger
from .resource_ledger import ResourceLedger, slot_key

logger = logging.getLogger(__name__)


def billing_key(patient_id: int) -> tuple:
    return ("billing", patient_id)


def appointment_key(appointment_id: int) -> tuple:
    return ("appointment", appointment_id)


class AppointmentService:
    """Application service for doctor slots, appointments and treatments.

    Booking follows the same shape as order placement: reserve the slot
    through the ledger, create the appointment, audit, commit.

    Keyed locks are taken before the first statement of a unit of work and
    always in the order appointment, billing, slot.
    """

    def __init__(
        self,
        uow_factory: Callable[[], UnitOfWork] = UnitOfWork,
        ledger: Optional[ResourceLedger] = None,
        audit: Optional[AuditLogger] = None,
        aggregates: Optional[AggregateMaintainer] = None,
    ):
        self.uow_factory = uow_factory
        self.ledger = ledger or ResourceLedger()
        self.audit = audit or AuditLogger()
        self.aggregates = aggregates or AggregateMaintainer()

    def open_slot(self, doctor_id: int, slot_time: datetime) -> int:
        """Publish a bookable slot. Duplicate (doctor, time) pairs are rejected."""
        with self.uow_factory() as uow:
            if not uow.patients.doctor_exists(doctor_id):
                raise NotFoundError("Doctor not found", context={"doctor_id": doctor_id})
            slot = uow.appointments.add_slot(
                DoctorSlot(doctor_id=doctor_id, slot_time=slot_time)
            )
            uow.commit()
        return slot.id

    def book_appointment(
        self, patient_id: int, doctor_id: int, slot_time: datetime
    ) -> int:
        """Book the doctor's free slot at exactly ``slot_time``.

        Returns:
            The new appointment id.

        Raises:
            NoSlotError: no unbooked slot matches; nothing is written.
            AuditError: the patient is unknown (strict audit policy).
        """
        BookAppointmentRequest(patient_id, doctor_id, slot_time).validate()

        with self.uow_factory() as uow:
            appointment = self._book(uow, patient_id, doctor_id, slot_time)
            uow.commit()

        logger.info(
            "Appointment booked",
            extra={
                "context": {
                    "appointment_id": appointment.id,
                    "patient_id": patient_id,
                    "doctor_id": doctor_id,
                    "slot_id": appointment.slot_id,
                }
            },
        )
        return appointment.id

    def book_appointment_with_treatment(
        self,
        patient_id: int,
        doctor_id: int,
        slot_time: datetime,
        treatment_type_id: int,
        cost: Optional[Decimal] = None,
        notes: Optional[str] = None,
    ) -> Tuple[int, int]:
        """Book a slot and record its first treatment in one transaction.

        If any step fails (no slot, unknown treatment type) neither the
        appointment nor the treatment is kept and the slot stays free.

        Returns:
            ``(appointment_id, treatment_id)``
        """
        BookAppointmentRequest(patient_id, doctor_id, slot_time).validate()
        treatment_request = AddTreatmentRequest(treatment_type_id, cost, notes)
        treatment_request.validate()

        with self.uow_factory() as uow:
            self.ledger.lock(uow, billing_key(patient_id))
            appointment = self._book(uow, patient_id, doctor_id, slot_time)
            treatment = self._add_treatment(uow, appointment, treatment_request)
            uow.commit()

        logger.info(
            "Appointment booked with treatment",
            extra={
                "context": {
                    "appointment_id": appointment.id,
                    "treatment_id": treatment.id,
                    "patient_id": patient_id,
                }
            },
        )
        return appointment.id, treatment.id

    def add_treatment(
        self,
        appointment_id: int,
        treatment_type_id: int,
        cost: Optional[Decimal] = None,
        notes: Optional[str] = None,
    ) -> int:
        """Record a treatment; ``cost`` defaults to the type's standard cost."""
        request = AddTreatmentRequest(treatment_type_id, cost, notes)
        request.validate()

        patient_id = self._read_appointment(appointment_id).patient_id

        with self.uow_factory() as uow:
            self.ledger.lock(uow, appointment_key(appointment_id))
            self.ledger.lock(uow, billing_key(patient_id))
            appointment = self._get_for_update(uow, appointment_id)
            if appointment.status == AppointmentStatus.CANCELLED:
                raise InvalidRequestError(
                    "Cannot add a treatment to a cancelled appointment",
                    context={"appointment_id": appointment_id},
                )
            treatment = self._add_treatment(uow, appointment, request)
            uow.commit()

        logger.info(
            "Treatment added",
            extra={
                "context": {
                    "treatment_id": treatment.id,
                    "appointment_id": appointment_id,
                    "cost": str(treatment.cost),
                }
            },
        )
        return treatment.id

    def complete_appointment(self, appointment_id: int) -> Appointment:
        return self._transition(
            appointment_id, AppointmentStatus.COMPLETED, "CompleteAppointment"
        )

    def cancel_appointment(self, appointment_id: int) -> Appointment:
        """Cancel an appointment and free its slot for rebooking."""
        return self._transition(
            appointment_id, AppointmentStatus.CANCELLED, "CancelAppointment"
        )

    def get_appointment(self, appointment_id: int) -> Optional[Appointment]:
        with self.uow_factory() as uow:
            return uow.appointments.get_by_id(appointment_id)

    def list_treatments(self, appointment_id: int) -> List[Treatment]:
        with self.uow_factory() as uow:
            return uow.treatments.list_for_appointment(appointment_id)

    def _book(self, uow, patient_id: int, doctor_id: int, slot_time: datetime):
        slot = self.ledger.reserve_slot(uow, doctor_id, slot_time)
        appointment = uow.appointments.create(
            Appointment(
                patient_id=patient_id,
                doctor_id=doctor_id,
                appointment_date=slot.slot_time,
                slot_id=slot.id,
            )
        )
        self.audit.record(
            uow,
            ActorKind.PATIENT,
            patient_id,
            "BookAppointment",
            "appointments",
            appointment.id,
        )
        return appointment

    def _add_treatment(self, uow, appointment: Appointment, request: AddTreatmentRequest):
        treatment_type = uow.patients.get_treatment_type(request.treatment_type_id)
        if treatment_type is None:
            raise NotFoundError(
                "Treatment type not found",
                context={"treatment_type_id": request.treatment_type_id},
            )
        cost = request.cost if request.cost is not None else treatment_type.standard_cost
        treatment = uow.treatments.add(
            Treatment(
                appointment_id=appointment.id,
                treatment_type_id=treatment_type.id,
                cost=cost,
                notes=request.notes,
            )
        )
        self.aggregates.recompute_billing_total(uow, appointment.patient_id)
        self.audit.record(
            uow,
            ActorKind.PATIENT,
            appointment.patient_id,
            "AddTreatment",
            "treatments",
            treatment.id,
        )
        return treatment

    def _read_appointment(self, appointment_id: int) -> Appointment:
        with self.uow_factory() as uow:
            appointment = uow.appointments.get_by_id(appointment_id)
        if appointment is None:
            raise NotFoundError(
                "Appointment not found", context={"appointment_id": appointment_id}
            )
        return appointment

    def _read_slot(self, appointment_id: int) -> Optional[DoctorSlot]:
        appointment = self._read_appointment(appointment_id)
        if appointment.slot_id is None:
            return None
        with self.uow_factory() as uow:
            return uow.appointments.get_slot(appointment.slot_id)

    def _get_for_update(self, uow, appointment_id: int) -> Appointment:
        appointment = uow.appointments.get_for_update(appointment_id)
        if appointment is None:
            raise NotFoundError(
                "Appointment not found", context={"appointment_id": appointment_id}
            )
        return appointment

    def _transition(
        self, appointment_id: int, target: AppointmentStatus, action: str
    ) -> Appointment:
        """Move an appointment to ``target``, freeing its slot when cancelled.

        The appointment key and, for a cancel, the slot key are taken before
        the first statement; the status is checked on the locked row.
        """
        slot = None
        if target == AppointmentStatus.CANCELLED:
            slot = self._read_slot(appointment_id)

        with self.uow_factory() as uow:
            self.ledger.lock(uow, appointment_key(appointment_id))
            if slot is not None:
                self.ledger.lock(uow, slot_key(slot.doctor_id, slot.slot_time))
            appointment = self._get_for_update(uow, appointment_id)
            if not appointment.can_transition_to(target):
                raise InvalidTransitionError(
                    f"Appointment cannot move from {appointment.status.value} to {target.value}",
                    context={"appointment_id": appointment_id},
                )
            if target == AppointmentStatus.CANCELLED and appointment.slot_id is not None:
                self.ledger.release_slot(uow, appointment.slot_id)

            updated = uow.appointments.set_status(appointment_id, target)
            self.audit.record(
                uow,
                ActorKind.PATIENT,
                appointment.patient_id,
                action,
                "appointments",
                appointment_id,
            )
            uow.commit()

        logger.info(
            "Appointment status changed",
            extra={
                "context": {
                    "appointment_id": appointment_id,
                    "from": appointment.status.value,
                    "to": target.value,
                }
            },
        )
        return updated
