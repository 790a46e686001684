"""
User Service
Company signup and admin-side user management
"""

from dataclasses import dataclass
from typing import List, Optional

from sqlalchemy.orm import Session

from src.models.approval_rule import ApprovalStep
from src.models.company import Company
from src.models.user import User, UserRole
from src.services.approval_rule_service import ApprovalRuleService
from src.utils.exceptions import (
    ConflictError,
    InvalidStateError,
    NotFoundError,
    UnauthorizedError,
    ValidationError,
)
from src.utils.logger import setup_logger, log_audit
from src.utils.security import generate_temporary_password, get_password_hash, verify_password

logger = setup_logger()


@dataclass
class CreatedUser:
    """A new account together with the password that was mailed to it"""
    user: User
    temporary_password: str


class UserService:
    """Service for company and user management"""

    def __init__(self, db: Session):
        self.db = db

    # ------------------------------------------------------------------
    # Signup
    # ------------------------------------------------------------------

    def signup(self, company_name: str, currency: str, full_name: str, email: str, password: str) -> User:
        """
        Create a company, its first admin and the default approval rule

        Raises:
            ConflictError: If the email is already registered
        """
        self._ensure_email_free(email)

        company = Company(name=company_name, currency=currency.upper())
        self.db.add(company)
        self.db.flush()

        admin = User(
            email=email,
            full_name=full_name,
            hashed_password=get_password_hash(password),
            role=UserRole.ADMIN,
            company_id=company.id,
        )
        self.db.add(admin)
        self.db.commit()
        self.db.refresh(admin)

        ApprovalRuleService(self.db).create_default_rule(company.id)

        logger.info(f"Company '{company_name}' ({company.currency}) created with admin {email}")
        log_audit(admin.id, "signup", f"company={company.id}", company_id=company.id)
        return admin

    # ------------------------------------------------------------------
    # User management
    # ------------------------------------------------------------------

    def list_users(self, company_id: int, include_inactive: bool = False) -> List[User]:
        query = self.db.query(User).filter(User.company_id == company_id)
        if not include_inactive:
            query = query.filter(User.is_active == True)  # noqa: E712
        return query.order_by(User.id).all()

    def get_user(self, admin: User, user_id: int) -> User:
        """Resolve a user in the admin's company"""
        user = self.db.get(User, user_id)
        if user is None or user.company_id != admin.company_id:
            raise NotFoundError(f"User {user_id} not found")
        return user

    def create_user(
        self,
        admin: User,
        email: str,
        full_name: str,
        role: UserRole,
        manager_id: Optional[int] = None,
    ) -> CreatedUser:
        """Create an account in the admin's company with a temporary password"""
        self._require_admin(admin)
        self._ensure_email_free(email)

        if manager_id is not None:
            self._resolve_manager(admin, manager_id)

        password = generate_temporary_password()
        user = User(
            email=email,
            full_name=full_name,
            hashed_password=get_password_hash(password),
            role=role,
            company_id=admin.company_id,
            manager_id=manager_id,
            is_first_login=True,
        )
        self.db.add(user)
        self.db.commit()
        self.db.refresh(user)

        logger.info(f"User {email} ({role.value}) created by admin {admin.id}")
        log_audit(admin.id, "create_user", f"user={user.id} role={role.value} manager={manager_id}", company_id=admin.company_id)
        return CreatedUser(user=user, temporary_password=password)

    def update_role(self, admin: User, user_id: int, role: UserRole) -> User:
        """Change a user's role; affects routing of future role-based steps only"""
        self._require_admin(admin)
        user = self.get_user(admin, user_id)
        if user.id == admin.id and role != UserRole.ADMIN:
            raise ValidationError("Admins cannot remove their own admin role")

        previous = user.role
        user.role = role
        self.db.commit()
        self.db.refresh(user)

        log_audit(admin.id, "update_role", f"user={user.id} {previous.value}->{role.value}", company_id=admin.company_id)
        return user

    def assign_manager(self, admin: User, user_id: int, manager_id: Optional[int]) -> User:
        """
        Set or clear a user's manager

        Raises:
            ValidationError: If the manager is the user itself or a report of it
        """
        self._require_admin(admin)
        user = self.get_user(admin, user_id)

        if manager_id is not None:
            if manager_id == user.id:
                raise ValidationError("A user cannot be their own manager")
            manager = self._resolve_manager(admin, manager_id)

            # Walk up from the new manager; meeting the user means a cycle
            seen = set()
            current = manager
            while current is not None and current.id not in seen:
                if current.id == user.id:
                    raise ValidationError(
                        f"Assigning user {manager_id} as manager of {user.id} would create a reporting cycle"
                    )
                seen.add(current.id)
                current = self.db.get(User, current.manager_id) if current.manager_id else None

        user.manager_id = manager_id
        self.db.commit()
        self.db.refresh(user)

        log_audit(admin.id, "assign_manager", f"user={user.id} manager={manager_id}", company_id=admin.company_id)
        return user

    def delete_user(self, admin: User, user_id: int) -> User:
        """
        Deactivate a user and detach their direct reports

        Raises:
            InvalidStateError: If the user is pinned to an approval step
        """
        self._require_admin(admin)
        user = self.get_user(admin, user_id)
        if user.id == admin.id:
            raise ValidationError("Admins cannot delete their own account")

        pinned = (
            self.db.query(ApprovalStep)
            .filter(ApprovalStep.user_id == user.id)
            .first()
        )
        if pinned is not None:
            raise InvalidStateError(
                f"User {user.id} is the approver of step {pinned.step}; change the approval rule first"
            )

        for report in list(user.reports):
            report.manager_id = None
        user.is_active = False
        self.db.commit()
        self.db.refresh(user)

        logger.info(f"User {user.email} deactivated by admin {admin.id}")
        log_audit(admin.id, "delete_user", f"user={user.id}", company_id=admin.company_id)
        return user

    def reset_password(self, admin: User, user_id: int) -> CreatedUser:
        """Issue a new temporary password"""
        self._require_admin(admin)
        user = self.get_user(admin, user_id)

        password = generate_temporary_password()
        user.hashed_password = get_password_hash(password)
        user.is_first_login = True
        self.db.commit()
        self.db.refresh(user)

        log_audit(admin.id, "reset_password", f"user={user.id}", company_id=admin.company_id)
        return CreatedUser(user=user, temporary_password=password)

    def change_password(self, user: User, current_password: str, new_password: str) -> User:
        if not verify_password(current_password, user.hashed_password):
            raise ValidationError("Current password is incorrect")
        user.hashed_password = get_password_hash(new_password)
        user.is_first_login = False
        self.db.commit()
        self.db.refresh(user)
        return user

    def update_company_currency(self, admin: User, currency: str) -> Company:
        """Change the currency new conversions target; existing conversions are kept"""
        self._require_admin(admin)
        company = self.db.get(Company, admin.company_id)
        previous = company.currency
        company.currency = currency.upper()
        self.db.commit()
        self.db.refresh(company)

        log_audit(admin.id, "update_currency", f"{previous}->{company.currency}", company_id=company.id)
        return company

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _require_admin(self, user: User) -> None:
        if user.role != UserRole.ADMIN or not user.is_active:
            raise UnauthorizedError("Admin access required")

    def _ensure_email_free(self, email: str) -> None:
        if self.db.query(User).filter(User.email == email).first():
            raise ConflictError(f"Email {email} is already registered")

    def _resolve_manager(self, admin: User, manager_id: int) -> User:
        manager = self.db.get(User, manager_id)
        if manager is None or manager.company_id != admin.company_id or not manager.is_active:
            raise NotFoundError(f"Manager {manager_id} not found")
        return manager
