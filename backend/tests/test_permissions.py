"""
Tests for capability rules, the status state machine and profiles.
"""
import pytest
from datetime import datetime, timezone
from decimal import Decimal

from shared.auth import Actor
from shared.dashboard import get_stats, get_analytics, list_categories, completion_rate
from shared.errors import ConflictError, ForbiddenError, ValidationError
from shared.models import ProjectStatus, can_transition
from shared.permissions import Action, authorize, is_allowed
from shared.users import create_user, update_profile, get_public_profile, search_users


PROJECT = {'projectId': 'p1', 'sellerId': 'owner-1', 'acceptedBidderId': 'seller-1'}


class TestCapabilities:
    """One rule per action."""

    @pytest.mark.parametrize('action', [
        Action.REVIEW_PROJECT, Action.REVIEW_BID, Action.CONFIRM_AS_ADMIN, Action.VIEW_ADMIN_DATA
    ])
    def test_admin_only(self, action):
        assert is_allowed(Actor('a', ['admin']), action, PROJECT)
        assert not is_allowed(Actor('owner-1', ['buyer']), action, PROJECT)

    @pytest.mark.parametrize('action', [
        Action.DECIDE_BID, Action.CONFIRM_AS_OWNER, Action.MARK_COMPLETE, Action.CREATE_ORDER, Action.SUBMIT_RATING
    ])
    def test_owner_only(self, action):
        assert is_allowed(Actor('owner-1', ['buyer']), action, PROJECT)
        assert not is_allowed(Actor('seller-1', ['seller']), action, PROJECT)
        assert not is_allowed(Actor('a', ['admin']), action, PROJECT)

    def test_submit_work_is_accepted_bidder_only(self):
        assert is_allowed(Actor('seller-1', ['seller']), Action.SUBMIT_WORK, PROJECT)
        assert not is_allowed(Actor('seller-2', ['seller']), Action.SUBMIT_WORK, PROJECT)
        assert not is_allowed(Actor('seller-1'), Action.SUBMIT_WORK, {'sellerId': 'x'})

    def test_view_all_bids(self):
        assert is_allowed(Actor('owner-1'), Action.VIEW_ALL_BIDS, PROJECT)
        assert is_allowed(Actor('a', ['admin']), Action.VIEW_ALL_BIDS, PROJECT)
        assert not is_allowed(Actor('seller-1'), Action.VIEW_ALL_BIDS, PROJECT)

    def test_anonymous_is_never_allowed(self):
        assert not is_allowed(None, Action.VIEW_ALL_BIDS, PROJECT)

    def test_authorize_message(self):
        with pytest.raises(ForbiddenError, match='Only the owner'):
            authorize(Actor('x'), Action.MARK_COMPLETE, PROJECT, 'Only the owner')

    def test_unknown_action(self):
        with pytest.raises(ValueError):
            is_allowed(Actor('x'), 'project:delete')


class TestStateMachine:
    """Allowed project status moves."""

    @pytest.mark.parametrize('current, target', [
        (ProjectStatus.PENDING, ProjectStatus.OPEN),
        (ProjectStatus.PENDING, ProjectStatus.CANCELLED),
        (ProjectStatus.OPEN, ProjectStatus.IN_PROGRESS),
        (ProjectStatus.IN_PROGRESS, ProjectStatus.COMPLETED),
    ])
    def test_allowed(self, current, target):
        assert can_transition(current, target)

    @pytest.mark.parametrize('current, target', [
        (ProjectStatus.PENDING, ProjectStatus.IN_PROGRESS),
        (ProjectStatus.OPEN, ProjectStatus.COMPLETED),
        (ProjectStatus.COMPLETED, ProjectStatus.IN_PROGRESS),
        (ProjectStatus.CANCELLED, ProjectStatus.OPEN),
    ])
    def test_forbidden(self, current, target):
        assert not can_transition(current, target)


class TestProfiles:
    """Tests for user profiles."""

    def test_duplicate_user(self, seller):
        with pytest.raises(ConflictError):
            create_user(seller.user_id, 'Again', 'again@example.com', 'seller')

    def test_update_profile(self, seller):
        user = update_profile(seller.user_id, {
            'bio': 'Full-stack developer',
            'skills': 'python, aws',
            'email': 'hijack@example.com'
        })

        assert user['bio'] == 'Full-stack developer'
        assert user['skills'] == ['python', 'aws']
        assert user['email'] == 'seller-1@example.com'

    def test_invalid_experience_level(self, seller):
        with pytest.raises(ValidationError):
            update_profile(seller.user_id, {'experienceLevel': 'Guru'})

    def test_public_profile_hides_email(self, seller):
        profile = get_public_profile(seller.user_id)
        assert profile['name'] == 'Sam Seller'
        assert 'email' not in profile

    def test_search(self, seller, other_seller, owner):
        names = sorted(u['name'] for u in search_users('sam'))
        assert names == ['Sam Seller']
        assert len(search_users('seller')) == 2
        assert search_users('') == []


class TestDashboard:
    """Tests for marketplace statistics."""

    def test_completion_rate(self):
        assert completion_rate(1, 3) == Decimal('33.3')
        assert completion_rate(0, 0) == Decimal('0')

    def test_stats(self, completed_project, admin, owner):
        from shared.projects import create_project
        from conftest import PROJECT_DATA
        create_project(owner, dict(PROJECT_DATA, title='Second'))

        stats = get_stats()

        assert stats['totalProjects'] == 2
        assert stats['completedProjects'] == 1
        assert stats['openProjects'] == 0
        assert stats['completionRate'] == Decimal('50.0')
        assert stats['totalBids'] == 1
        # Admins are not counted as members
        assert stats['totalUsers'] == 2

    def test_analytics_includes_empty_months(self, open_project, admin):
        analytics = get_analytics(admin, now=datetime.now(timezone.utc))

        assert len(analytics['barData']) == 6
        assert analytics['barData'][-1]['projects'] == 1
        assert sum(m['projects'] for m in analytics['barData']) == 1
        assert analytics['pieData'] == [{'name': 'web-dev', 'value': 1}]

    def test_analytics_admin_only(self, owner):
        with pytest.raises(ForbiddenError):
            get_analytics(owner)

    def test_categories_count_open_projects(self, open_project):
        categories = {c['id']: c['count'] for c in list_categories()}
        assert categories['web-dev'] == 1
        assert categories['design'] == 0
