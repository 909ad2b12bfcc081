"""
Patient repository implementation.

Covers the clinic's reference data: patients, doctors and treatment types.
"""

from typing import Optional

from reservations.db.base import Doctor as DbDoctor
from reservations.db.base import Patient as DbPatient
from reservations.db.base import TreatmentType as DbTreatmentType
from reservations.domain.entities import Doctor, Patient, TreatmentType
from reservations.domain.interfaces import IPatientRepository
from reservations.utils.money import to_decimal


class PatientRepository(IPatientRepository):
    def __init__(self, db_session) -> None:
        self.db = db_session

    def add_patient(self, patient: Patient) -> Patient:
        db_patient = DbPatient(
            name=patient.name,
            dob=patient.dob,
            gender=patient.gender,
            contact_info=patient.contact_info,
        )
        self.db.add(db_patient)
        self.db.flush()
        return self._patient_to_domain(db_patient)

    def add_doctor(self, doctor: Doctor) -> Doctor:
        db_doctor = DbDoctor(name=doctor.name, specialty=doctor.specialty)
        self.db.add(db_doctor)
        self.db.flush()
        return Doctor(id=db_doctor.id, name=db_doctor.name, specialty=db_doctor.specialty)

    def add_treatment_type(self, treatment_type: TreatmentType) -> TreatmentType:
        db_type = DbTreatmentType(
            name=treatment_type.name, standard_cost=treatment_type.standard_cost
        )
        self.db.add(db_type)
        self.db.flush()
        return self._treatment_type_to_domain(db_type)

    def patient_exists(self, patient_id: int) -> bool:
        return (
            self.db.query(DbPatient.id).filter(DbPatient.id == patient_id).first()
            is not None
        )

    def doctor_exists(self, doctor_id: int) -> bool:
        return (
            self.db.query(DbDoctor.id).filter(DbDoctor.id == doctor_id).first()
            is not None
        )

    def get_treatment_type(self, treatment_type_id: int) -> Optional[TreatmentType]:
        db_type = self.db.get(DbTreatmentType, treatment_type_id)
        return self._treatment_type_to_domain(db_type) if db_type else None

    def _patient_to_domain(self, db_patient: DbPatient) -> Patient:
        return Patient(
            id=db_patient.id,
            name=db_patient.name,
            dob=db_patient.dob,
            gender=db_patient.gender,
            contact_info=db_patient.contact_info,
        )

    def _treatment_type_to_domain(self, db_type: DbTreatmentType) -> TreatmentType:
        return TreatmentType(
            id=db_type.id,
            name=db_type.name,
            standard_cost=to_decimal(db_type.standard_cost),
        )
