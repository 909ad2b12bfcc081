from decimal import Decimal
from typing import List

from sqlalchemy import func

from reservations.db.base import Appointment as DbAppointment
from reservations.db.base import Treatment as DbTreatment
from reservations.domain.entities import Treatment
from reservations.domain.interfaces import ITreatmentRepository
from reservations.utils.money import to_decimal


class TreatmentRepository(ITreatmentRepository):
    def __init__(self, db_session) -> None:
        self.db = db_session

    def add(self, treatment: Treatment) -> Treatment:
        db_treatment = DbTreatment(
            appointment_id=treatment.appointment_id,
            treatment_type_id=treatment.treatment_type_id,
            cost=treatment.cost,
            notes=treatment.notes,
        )
        self.db.add(db_treatment)
        self.db.flush()
        return self._to_domain(db_treatment)

    def list_for_appointment(self, appointment_id: int) -> List[Treatment]:
        rows = (
            self.db.query(DbTreatment)
            .filter(DbTreatment.appointment_id == appointment_id)
            .order_by(DbTreatment.id.asc())
            .all()
        )
        return [self._to_domain(row) for row in rows]

    def total_cost_for_patient(self, patient_id: int) -> Decimal:
        total = (
            self.db.query(func.sum(DbTreatment.cost))
            .join(DbAppointment, DbAppointment.id == DbTreatment.appointment_id)
            .filter(DbAppointment.patient_id == patient_id)
            .scalar()
        )
        return to_decimal(total)

    def _to_domain(self, db_treatment: DbTreatment) -> Treatment:
        return Treatment(
            id=db_treatment.id,
            appointment_id=db_treatment.appointment_id,
            treatment_type_id=db_treatment.treatment_type_id,
            cost=to_decimal(db_treatment.cost),
            notes=db_treatment.notes,
        )
