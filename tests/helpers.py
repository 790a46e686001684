"""
Test helpers shared across modules
"""

from datetime import date

from src.models.approval_rule import ApprovalStep
from src.models.expense import Expense


def set_rule(db, rule, gate, targets):
    """Replace a rule's gate flag and sequence in place; ints are pinned user ids"""
    rule.is_manager_approver_required = gate
    rule.sequence.clear()
    db.flush()
    for position, target in enumerate(targets, start=1):
        if isinstance(target, int):
            rule.sequence.append(ApprovalStep(step=position, user_id=target))
        else:
            rule.sequence.append(ApprovalStep(step=position, role=target))
    db.commit()


def build_expense(employee, amount=120.0, currency="USD"):
    return Expense(
        employee_id=employee.id,
        employee_name=employee.full_name,
        company_id=employee.company_id,
        amount=amount,
        currency=currency,
        category="Travel",
        description="Taxi to client site",
        expense_date=date(2026, 10, 1),
    )
