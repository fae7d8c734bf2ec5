from typing import Any, Dict, List, Optional, Union
from sqlalchemy.orm import Session
from app.crud.base import CRUDBase
from app.models.user import User, UserRole
from app.schemas.user import UserCreate, UserUpdate
from app.core.security import get_password_hash, verify_password


class CRUDUser(CRUDBase[User, UserCreate, UserUpdate]):

    def get_by_username(self, db: Session, *, username: str) -> Optional[User]:
        return db.query(User).filter(User.username == username).first()

    def get_directory(self, db: Session) -> List[User]:
        """Every active user in id order; the approval policy works over this snapshot."""
        return (
            db.query(User)
            .filter(User.is_active == True)
            .order_by(User.id)
            .all()
        )

    def get_filtered(
        self,
        db: Session,
        *,
        department: Optional[str] = None,
        role: Optional[UserRole] = None,
        skip: int = 0,
        limit: int = 100,
    ) -> List[User]:
        query = db.query(User)
        if department:
            query = query.filter(User.department == department)
        if role:
            query = query.filter(User.role == role)
        return query.order_by(User.id).offset(skip).limit(limit).all()

    def create(self, db: Session, *, obj_in: UserCreate) -> User:
        create_data = obj_in.model_dump(exclude={"password"})
        create_data["hashed_password"] = get_password_hash(obj_in.password)
        db_obj = User(**create_data)
        db.add(db_obj)
        db.commit()
        db.refresh(db_obj)
        return db_obj

    def update(
        self, db: Session, *, db_obj: User, obj_in: Union[UserUpdate, Dict[str, Any]]
    ) -> User:
        if isinstance(obj_in, dict):
            update_data = obj_in
        else:
            update_data = obj_in.model_dump(exclude_unset=True)
        if "password" in update_data:
            update_data["hashed_password"] = get_password_hash(update_data.pop("password"))
        return super().update(db, db_obj=db_obj, obj_in=update_data)

    def authenticate(self, db: Session, *, username: str, password: str) -> Optional[User]:
        user = self.get_by_username(db, username=username)
        if not user:
            return None
        if not verify_password(password, user.hashed_password):
            return None
        return user

    def is_active(self, user: User) -> bool:
        return user.is_active

    def creates_reporting_cycle(self, db: Session, *, user_id: int, manager_id: int) -> bool:
        """True when making ``manager_id`` the manager of ``user_id`` would close a loop."""
        seen = set()
        current = manager_id
        while current is not None:
            if current == user_id:
                return True
            if current in seen:
                # Pre-existing loop that does not involve user_id
                return True
            seen.add(current)
            manager = self.get(db, id=current)
            current = manager.manager_id if manager else None
        return False


user = CRUDUser(User)
