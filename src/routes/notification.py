"""
Notification Routes
Notifications sent to the current user
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from src.config.database import get_db
from src.models.notification import Notification
from src.models.user import User
from src.services.auth_service import auth_service

router = APIRouter()


@router.get("")
async def get_my_notifications(
    skip: int = 0,
    limit: int = 50,
    db: Session = Depends(get_db),
    current_user: User = Depends(auth_service.get_current_user)
):
    """
    Get notifications addressed to the current user's email

    **Returns:**
    - total: Total notification count
    - notifications: Newest first
    """
    query = db.query(Notification).filter(Notification.recipient_email == current_user.email)
    total_count = query.count()

    notifications = query.order_by(
        Notification.created_at.desc(), Notification.id.desc()
    ).offset(skip).limit(limit).all()

    return {
        "total": total_count,
        "notifications": [
            {
                "id": n.id,
                "kind": n.kind.value,
                "subject": n.subject,
                "body": n.body,
                "expense_id": n.expense_id,
                "delivered": n.delivered,
                "created_at": n.created_at.isoformat(),
            }
            for n in notifications
        ]
    }
