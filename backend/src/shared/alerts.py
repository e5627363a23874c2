"""
Saved project alerts: a user's stored search (category, skills, budget range).
"""
from decimal import Decimal
from typing import Any, Dict, List, Optional
from boto3.dynamodb.conditions import Key
from .config import config
from .dynamo import get_item, put_item, delete_item, query
from .errors import NotFoundError, ValidationError
from .logging import logger
from .models import ProjectStatus
from .projects import list_projects
from .utils import new_id, now_iso, to_decimal, to_string_list


def _optional_amount(value: Any, field: str) -> Optional[Decimal]:
    if value is None or value == '':
        return None
    return to_decimal(value, field)


def list_alerts(actor) -> List[dict]:
    """The caller's alerts, newest first."""
    alerts = query(config.ALERTS_TABLE, Key('userId').eq(actor.user_id))
    alerts.sort(key=lambda a: a.get('createdAt', ''), reverse=True)
    return alerts


def get_alert(actor, alert_id: str) -> dict:
    alert = get_item(config.ALERTS_TABLE, {'userId': actor.user_id, 'alertId': alert_id})
    if not alert:
        raise NotFoundError('Alert not found')
    return alert


def create_alert(actor, data: Dict[str, Any]) -> dict:
    """
    Save an alert for the caller.

    Raises:
        ValidationError: blank name, bad budget, or the user already has the maximum
    """
    name = str(data.get('name') or '').strip()
    if not name:
        raise ValidationError('Alert name is required')

    budget_min = _optional_amount(data.get('budgetMin'), 'budgetMin')
    budget_max = _optional_amount(data.get('budgetMax'), 'budgetMax')
    if budget_min is not None and budget_max is not None and budget_min > budget_max:
        raise ValidationError('Minimum budget cannot exceed maximum budget')

    existing = query(config.ALERTS_TABLE, Key('userId').eq(actor.user_id))
    if len(existing) >= config.MAX_SAVED_ALERTS:
        raise ValidationError(f"Maximum {config.MAX_SAVED_ALERTS} saved alerts allowed")

    alert = {
        'userId': actor.user_id,
        'alertId': new_id(),
        'name': name,
        'category': data.get('category') or '',
        'skills': to_string_list(data.get('skills')),
        'createdAt': now_iso()
    }
    if budget_min is not None:
        alert['budgetMin'] = budget_min
    if budget_max is not None:
        alert['budgetMax'] = budget_max

    put_item(config.ALERTS_TABLE, alert)
    logger.info(f"Saved alert {alert['alertId']} for {actor.user_id}")
    return alert


def delete_alert(actor, alert_id: str) -> None:
    deleted = delete_item(
        config.ALERTS_TABLE,
        {'userId': actor.user_id, 'alertId': alert_id},
        condition_expression='attribute_exists(alertId)'
    )
    if not deleted:
        raise NotFoundError('Alert not found')


def _budget_overlaps(project: dict, alert: dict) -> bool:
    budget = project.get('budget') or {}
    if alert.get('budgetMin') is not None and budget.get('max', 0) < alert['budgetMin']:
        return False
    if alert.get('budgetMax') is not None and budget.get('min', 0) > alert['budgetMax']:
        return False
    return True


def _shares_skill(project: dict, alert: dict) -> bool:
    wanted = {s.lower() for s in alert.get('skills') or []}
    if not wanted:
        return True
    offered = {s.lower() for s in (project.get('skills') or []) + (project.get('posterSkills') or [])}
    return bool(wanted & offered)


def matching_projects(actor, alert_id: str, since: str = None) -> List[dict]:
    """Open projects matching one of the caller's alerts, newest first."""
    alert = get_alert(actor, alert_id)
    projects = list_projects(
        category=alert.get('category') or None,
        status=ProjectStatus.OPEN,
        since=since
    )
    return [p for p in projects if _shares_skill(p, alert) and _budget_overlaps(p, alert)]
