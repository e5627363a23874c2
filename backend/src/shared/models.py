"""
Data models and status constants for the marketplace.
Based on the project lifecycle: Pending → Open → In-Progress → Completed (or Pending → Cancelled)
"""


class UserRole:
    """Account roles (mirrors the Cognito groups)."""
    BUYER = 'buyer'
    SELLER = 'seller'
    ADMIN = 'admin'

    ALL = (BUYER, SELLER, ADMIN)


class ProjectStatus:
    """Project lifecycle statuses."""
    PENDING = 'pending'          # Awaiting admin review
    OPEN = 'open'                # Visible, accepting bids
    IN_PROGRESS = 'in-progress'  # A bid was accepted
    COMPLETED = 'completed'
    CANCELLED = 'cancelled'


class BidStatus:
    """Owner decision on a bid."""
    PENDING = 'pending'
    ACCEPTED = 'accepted'
    REJECTED = 'rejected'


class BidAdminStatus:
    """Admin gate on a bid."""
    PENDING_ADMIN = 'pending_admin'
    APPROVED = 'approved'
    REJECTED_ADMIN = 'rejected_admin'


class PaymentStatus:
    """Purchase settlement statuses. Only ever advances."""
    PENDING = 'pending'
    PAID = 'paid'
    RELEASED = 'released'


class NotificationType:
    """Notification feed event types."""
    NEW_BID = 'new_bid'
    NEW_PROJECT = 'new_project'
    BID_ACCEPTED = 'bid_accepted'
    BID_REJECTED = 'bid_rejected'
    BID_APPROVED_ADMIN = 'bid_approved_admin'
    BID_REJECTED_ADMIN = 'bid_rejected_admin'
    PROJECT_COMPLETED = 'project_completed'
    WORK_SUBMITTED = 'work_submitted'
    PAYMENT_RECEIVED = 'payment_received'
    PAYMENT_RELEASED = 'payment_released'
    PAYMENT_PENDING = 'payment_pending'
    WORK_CONFIRMED_ADMIN = 'work_confirmed_admin'
    WORK_CONFIRMED_OWNER = 'work_confirmed_owner'


class ProjectType:
    FIXED_PRICE = 'Fixed Price'
    HOURLY = 'Hourly'

    ALL = (FIXED_PRICE, HOURLY)


class UrgencyLevel:
    NORMAL = 'Normal'
    URGENT = 'Urgent'
    CRITICAL = 'Critical'

    ALL = (NORMAL, URGENT, CRITICAL)


# Profile snapshot enums ('' means "not specified")
EXPERIENCE_LEVELS = ('Junior', 'Mid-Level', 'Senior', 'Expert', '')
AVAILABILITY_OPTIONS = ('Full-Time', 'Part-Time', 'Weekends Only', '')

# Fields a bid may copy onto the bidder's profile
PROFILE_SNAPSHOT_FIELDS = (
    'skills',
    'experienceLevel',
    'yearsOfExperience',
    'bio',
    'portfolioUrl',
    'linkedinUrl',
    'availability',
)

# Predefined project categories (id, display name, icon)
CATEGORIES = [
    {'id': 'web-dev', 'name': 'Web Development', 'icon': 'Globe'},
    {'id': 'mobile', 'name': 'Mobile Apps', 'icon': 'Smartphone'},
    {'id': 'design', 'name': 'UI/UX & Design', 'icon': 'Palette'},
    {'id': 'writing', 'name': 'Content & Writing', 'icon': 'FileText'},
    {'id': 'marketing', 'name': 'Social Media & Marketing', 'icon': 'TrendingUp'},
    {'id': 'data', 'name': 'Data Science & AI', 'icon': 'BarChart3'},
    {'id': 'prog-tech', 'name': 'Programming & Tech', 'icon': 'Code2'},
    {'id': 'digital-marketing', 'name': 'SEO & Performance', 'icon': 'Megaphone'},
    {'id': 'video', 'name': 'Video & Animation', 'icon': 'Video'},
    {'id': 'finance', 'name': 'Finance & Accounting', 'icon': 'DollarSign'},
]

# Valid project transitions: {from_status: {allowed_to_statuses}}
PROJECT_TRANSITIONS = {
    ProjectStatus.PENDING: {ProjectStatus.OPEN, ProjectStatus.CANCELLED},
    ProjectStatus.OPEN: {ProjectStatus.IN_PROGRESS, ProjectStatus.CANCELLED},
    ProjectStatus.IN_PROGRESS: {ProjectStatus.COMPLETED},
    # Terminal
    ProjectStatus.COMPLETED: set(),
    ProjectStatus.CANCELLED: set(),
}


def can_transition(current: str, target: str) -> bool:
    """Check whether a project may move from `current` to `target`."""
    return target in PROJECT_TRANSITIONS.get(current, set())


def is_terminal(status: str) -> bool:
    return not PROJECT_TRANSITIONS.get(status)
