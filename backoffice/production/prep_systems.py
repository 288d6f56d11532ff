import logging
from decimal import Decimal, InvalidOperation

from backoffice.core.utils import log_activity
from .models import PREP_SYSTEM_CHOICES
from .utils import write_task_fields

logger = logging.getLogger(__name__)

PREP_SYSTEMS = [value for value, _ in PREP_SYSTEM_CHOICES]


def to_decimal(value, field):
    try:
        number = Decimal(str(value))
    except (InvalidOperation, TypeError, ValueError):
        raise ValueError(f"{field} must be a number")
    if not number.is_finite():
        raise ValueError(f"{field} must be a number")
    if number < 0:
        raise ValueError(f"{field} cannot be negative")
    return number


def to_count(value, field):
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ValueError(f"{field} must be a whole number")
    if number < 0:
        raise ValueError(f"{field} cannot be negative")
    return number


def compute_amount_required(par_level, current_level):
    """What still has to be prepped to reach PAR, never negative"""
    return max(Decimal('0'), Decimal(str(par_level)) - Decimal(str(current_level)))


def compute_case_amount(cases, units, units_per_case=1):
    units_per_case = units_per_case or 1
    return cases * units_per_case + units


def update_levels(task, par_level, current_level):
    """Store PAR and on-hand levels; only PAR tasks derive the amount from them"""
    par_level = to_decimal(par_level, 'par_level')
    current_level = to_decimal(current_level, 'current_level')
    fields = {'par_level': par_level, 'current_level': current_level}
    if task.prep_system == 'par':
        fields['amount_required'] = compute_amount_required(par_level, current_level)
    write_task_fields(task, fields)
    return task


def update_cases(task, cases, units, units_per_case=None):
    cases = to_count(cases, 'cases')
    units = to_count(units, 'units')
    if units_per_case is None:
        units_per_case = task.units_per_case or 1
    units_per_case = to_count(units_per_case, 'units_per_case') or 1

    write_task_fields(task, {
        'cases': cases,
        'units': units,
        'units_per_case': units_per_case,
        'amount_required': Decimal(compute_case_amount(cases, units, units_per_case)),
    })
    return task


def update_amount(task, amount_required):
    write_task_fields(task, {'amount_required': to_decimal(amount_required, 'amount_required')})
    return task


def change_prep_system(task, prep_system, user=None):
    """Switch the prep system; other fields stay, PAR recomputes the amount"""
    if prep_system not in PREP_SYSTEMS:
        raise ValueError(f"Unknown prep system: {prep_system}")

    previous = task.prep_system
    fields = {'prep_system': prep_system}
    if prep_system == 'par':
        fields['amount_required'] = compute_amount_required(task.par_level, task.current_level)
    write_task_fields(task, fields)

    if previous != prep_system:
        log_activity(
            organization=task.organization,
            user=user,
            activity_type='task_prep_system_changed',
            details={'task_id': str(task.id), 'task_title': task.title, 'from': previous, 'to': prep_system},
        )
    return task
