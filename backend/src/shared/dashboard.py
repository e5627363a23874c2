"""
Marketplace statistics for the dashboard and the category browser.
"""
from collections import Counter
from datetime import datetime, timezone
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, List
from .config import config
from .dynamo import scan_all
from .models import ProjectStatus, UserRole, CATEGORIES
from .permissions import Action, authorize
from .utils import parse_iso

MONTH_NAMES = ['Jan', 'Feb', 'Mar', 'Apr', 'May', 'Jun', 'Jul', 'Aug', 'Sep', 'Oct', 'Nov', 'Dec']
ANALYTICS_MONTHS = 6


def completion_rate(completed: int, total: int) -> Decimal:
    """Completed share of all projects as a percentage, one decimal."""
    if not total:
        return Decimal('0')
    rate = Decimal(completed) * 100 / Decimal(total)
    return rate.quantize(Decimal('0.1'), rounding=ROUND_HALF_UP)


def get_stats() -> Dict[str, Any]:
    """Headline counts shown to every signed-in user."""
    projects = scan_all(config.PROJECTS_TABLE)
    statuses = Counter(p.get('status') for p in projects)
    users = [u for u in scan_all(config.USERS_TABLE) if u.get('role') != UserRole.ADMIN]

    total = len(projects)
    open_count = statuses[ProjectStatus.OPEN]
    completed = statuses[ProjectStatus.COMPLETED]
    return {
        'totalProjects': total,
        'totalUsers': len(users),
        'openProjects': open_count,
        'completedProjects': completed,
        'totalPurchases': len(scan_all(config.PURCHASES_TABLE)),
        'completionRate': completion_rate(completed, total),
        'totalBids': len(scan_all(config.BIDS_TABLE)),
        'liveProjects': open_count
    }


def _recent_months(now: datetime, count: int) -> List[tuple]:
    """(year, month) pairs for the last `count` months, oldest first."""
    months = []
    year, month = now.year, now.month
    for _ in range(count):
        months.append((year, month))
        month -= 1
        if month == 0:
            year, month = year - 1, 12
    return list(reversed(months))


def get_analytics(actor, now: datetime = None) -> Dict[str, Any]:
    """
    Projects created per month over the last six months (including the
    current one) and the category distribution of all projects.
    """
    authorize(actor, Action.VIEW_ADMIN_DATA, message='Admin access required')
    now = now or datetime.now(timezone.utc)
    projects = scan_all(config.PROJECTS_TABLE)

    months = _recent_months(now, ANALYTICS_MONTHS)
    per_month = Counter()
    for project in projects:
        created = parse_iso(project['createdAt'])
        per_month[(created.year, created.month)] += 1

    bar_data = [{'month': MONTH_NAMES[m - 1], 'projects': per_month[(y, m)]} for y, m in months]
    pie_data = [
        {'name': name, 'value': value}
        for name, value in Counter(p.get('category', '') for p in projects).most_common()
    ]
    return {'barData': bar_data, 'pieData': pie_data}


def list_categories() -> List[dict]:
    """All predefined categories with their open-project counts."""
    open_counts = Counter(
        p.get('category')
        for p in scan_all(config.PROJECTS_TABLE)
        if p.get('status') == ProjectStatus.OPEN
    )
    return [dict(category, count=open_counts[category['id']]) for category in CATEGORIES]
