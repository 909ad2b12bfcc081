"""
Appointment repository implementation.

Doctor slots are the reservable resource; appointments are the records
booked against them.
"""

from datetime import datetime
from typing import Optional

from reservations.db.base import Appointment as DbAppointment
from reservations.db.base import DoctorSlot as DbDoctorSlot
from reservations.domain.entities import Appointment as DomainAppointment
from reservations.domain.entities import AppointmentStatus, DoctorSlot
from reservations.domain.interfaces import IAppointmentRepository


class AppointmentRepository(IAppointmentRepository):
    def __init__(self, db_session) -> None:
        self.db = db_session

    def add_slot(self, slot: DoctorSlot) -> DoctorSlot:
        db_slot = DbDoctorSlot(
            doctor_id=slot.doctor_id,
            slot_time=slot.slot_time,
            is_booked=slot.is_booked,
        )
        self.db.add(db_slot)
        self.db.flush()
        return self._slot_to_domain(db_slot)

    def find_open_slot(
        self, doctor_id: int, slot_time: datetime
    ) -> Optional[DoctorSlot]:
        db_slot = (
            self.db.query(DbDoctorSlot)
            .filter(
                DbDoctorSlot.doctor_id == doctor_id,
                DbDoctorSlot.slot_time == slot_time,
                DbDoctorSlot.is_booked.is_(False),
            )
            .order_by(DbDoctorSlot.id.asc())
            .with_for_update()
            .populate_existing()
            .first()
        )
        return self._slot_to_domain(db_slot) if db_slot else None

    def get_slot(self, slot_id: int) -> Optional[DoctorSlot]:
        db_slot = self.db.get(DbDoctorSlot, slot_id)
        return self._slot_to_domain(db_slot) if db_slot else None

    def set_slot_booked(self, slot_id: int, is_booked: bool) -> DoctorSlot:
        db_slot = self.db.get(DbDoctorSlot, slot_id)
        if not db_slot:
            raise ValueError("Slot not found")
        db_slot.is_booked = is_booked
        self.db.flush()
        return self._slot_to_domain(db_slot)

    def create(self, appointment: DomainAppointment) -> DomainAppointment:
        db_appointment = DbAppointment(
            patient_id=appointment.patient_id,
            doctor_id=appointment.doctor_id,
            slot_id=appointment.slot_id,
            appointment_date=appointment.appointment_date,
            status=appointment.status.value,
        )
        self.db.add(db_appointment)
        self.db.flush()
        return self._to_domain(db_appointment)

    def get_by_id(self, appointment_id: int) -> Optional[DomainAppointment]:
        db_appointment = self.db.get(DbAppointment, appointment_id)
        return self._to_domain(db_appointment) if db_appointment else None

    def get_for_update(self, appointment_id: int) -> Optional[DomainAppointment]:
        db_appointment = (
            self.db.query(DbAppointment)
            .filter(DbAppointment.id == appointment_id)
            .with_for_update()
            .populate_existing()
            .first()
        )
        return self._to_domain(db_appointment) if db_appointment else None

    def set_status(
        self, appointment_id: int, status: AppointmentStatus
    ) -> DomainAppointment:
        db_appointment = self.db.get(DbAppointment, appointment_id)
        if not db_appointment:
            raise ValueError("Appointment not found")
        db_appointment.status = AppointmentStatus(status).value
        self.db.flush()
        return self._to_domain(db_appointment)

    def _slot_to_domain(self, db_slot: DbDoctorSlot) -> DoctorSlot:
        return DoctorSlot(
            id=db_slot.id,
            doctor_id=db_slot.doctor_id,
            slot_time=db_slot.slot_time,
            is_booked=bool(db_slot.is_booked),
        )

    def _to_domain(self, db_appointment: DbAppointment) -> DomainAppointment:
        return DomainAppointment(
            id=db_appointment.id,
            patient_id=db_appointment.patient_id,
            doctor_id=db_appointment.doctor_id,
            slot_id=db_appointment.slot_id,
            appointment_date=db_appointment.appointment_date,
            status=db_appointment.status,
        )
