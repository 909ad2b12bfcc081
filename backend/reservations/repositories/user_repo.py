"""
User repository implementation.

Handles marketplace accounts and the vendor profiles attached to them.
"""

from typing import List, Optional

from reservations.db.base import User as DbUser
from reservations.db.base import Vendor as DbVendor
from reservations.domain.entities import User as DomainUser
from reservations.domain.entities import Vendor as DomainVendor
from reservations.domain.interfaces import IUserRepository


class UserRepository(IUserRepository):
    def __init__(self, db_session) -> None:
        self.db = db_session

    def add(self, user: DomainUser) -> DomainUser:
        db_user = DbUser(name=user.name, email=user.email, role=user.role.value)
        self.db.add(db_user)
        self.db.flush()
        return self._to_domain(db_user)

    def add_vendor(self, vendor: DomainVendor) -> DomainVendor:
        db_vendor = DbVendor(
            user_id=vendor.user_id,
            company_name=vendor.company_name,
            rating=vendor.rating,
        )
        self.db.add(db_vendor)
        self.db.flush()
        return self._vendor_to_domain(db_vendor)

    def get_by_id(self, user_id: int) -> Optional[DomainUser]:
        db_user = self.db.get(DbUser, user_id)
        return self._to_domain(db_user) if db_user else None

    def exists(self, user_id: int) -> bool:
        return (
            self.db.query(DbUser.id).filter(DbUser.id == user_id).first() is not None
        )

    def get_vendor(self, vendor_id: int) -> Optional[DomainVendor]:
        db_vendor = self.db.get(DbVendor, vendor_id)
        return self._vendor_to_domain(db_vendor) if db_vendor else None

    def list_vendor_ids(self) -> List[int]:
        rows = self.db.query(DbVendor.id).order_by(DbVendor.id.asc()).all()
        return [row[0] for row in rows]

    def _to_domain(self, db_user: DbUser) -> DomainUser:
        return DomainUser(
            id=db_user.id,
            name=db_user.name,
            email=db_user.email,
            role=db_user.role,
        )

    def _vendor_to_domain(self, db_vendor: DbVendor) -> DomainVendor:
        return DomainVendor(
            id=db_vendor.id,
            user_id=db_vendor.user_id,
            company_name=db_vendor.company_name,
            rating=db_vendor.rating,
        )
