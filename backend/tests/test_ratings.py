"""
Tests for ratings and rating aggregation.
"""
import pytest
from decimal import Decimal

from shared import gateway
from shared.config import config
from shared.dynamo import put_item
from shared.errors import ConflictError, ForbiddenError, InvalidStateError, NotFoundError, ValidationError
from shared.ratings import (
    submit_rating, check_rating, average_rating, recompute_user_rating,
    list_ratings_for_user, list_all_ratings
)
from shared.settlement import verify_payment, find_purchase
from shared.users import get_user


def received_rating(project_id, rater_id, ratee_id, stars):
    put_item(config.RATINGS_TABLE, {
        'projectId': project_id,
        'raterId': rater_id,
        'rateeId': ratee_id,
        'stars': stars,
        'comment': '',
        'createdAt': f'2026-01-0{stars}T00:00:00+00:00'
    })


class TestAverage:
    """Tests for the one-decimal mean."""

    def test_whole_mean(self):
        assert average_rating([5, 4, 3]) == Decimal('4.0')

    def test_rounds_half_up(self):
        assert average_rating([4, 4, 4, 5]) == Decimal('4.3')
        assert average_rating([4, 5]) == Decimal('4.5')
        assert average_rating([1, 1, 2, 2, 2, 2, 2, 2]) == Decimal('1.8')

    def test_empty(self):
        assert average_rating([]) == Decimal('0')


class TestRecompute:
    """Tests for recomputing from every received rating."""

    def test_recompute_from_all_ratings(self, seller):
        for project_id, stars in (('p1', 5), ('p2', 4), ('p3', 3)):
            received_rating(project_id, 'owner-x', seller.user_id, stars)

        summary = recompute_user_rating(seller.user_id)

        assert summary == {'rating': Decimal('4.0'), 'ratingCount': 3}
        user = get_user(seller.user_id)
        assert user['rating'] == Decimal('4.0')
        assert user['ratingCount'] == 3

    def test_included_rating_counted_once(self, seller):
        received_rating('p1', 'owner-x', seller.user_id, 4)
        just_written = {'projectId': 'p1', 'raterId': 'owner-x', 'rateeId': seller.user_id, 'stars': 4}

        summary = recompute_user_rating(seller.user_id, include=just_written)
        assert summary['ratingCount'] == 1


class TestSubmitRating:
    """Tests for rating the accepted freelancer."""

    def test_rate_completed_project(self, completed_project, owner, seller):
        rating = submit_rating(completed_project['projectId'], owner, 5, '  Great work  ')

        assert rating['rateeId'] == seller.user_id
        assert rating['stars'] == 5
        assert rating['comment'] == 'Great work'
        user = get_user(seller.user_id)
        assert user['rating'] == Decimal('5.0')
        assert user['ratingCount'] == 1

    def test_rating_marks_purchase(self, completed_project, owner):
        project_id = completed_project['projectId']
        signature = gateway.sign(b'order_1|pay_1', config.RAZORPAY_KEY_SECRET)
        verify_payment(project_id, 'order_1', 'pay_1', signature, owner)

        submit_rating(project_id, owner, 4)

        assert find_purchase(project_id, owner.user_id)['isRated'] is True

    def test_rate_twice(self, completed_project, owner, seller):
        submit_rating(completed_project['projectId'], owner, 4)

        with pytest.raises(ConflictError):
            submit_rating(completed_project['projectId'], owner, 1)
        assert get_user(seller.user_id)['ratingCount'] == 1

    def test_only_owner(self, completed_project, seller, admin):
        with pytest.raises(ForbiddenError):
            submit_rating(completed_project['projectId'], seller, 5)
        with pytest.raises(ForbiddenError):
            submit_rating(completed_project['projectId'], admin, 5)

    def test_only_completed_projects(self, in_progress_project, owner):
        with pytest.raises(InvalidStateError):
            submit_rating(in_progress_project['projectId'], owner, 5)

    @pytest.mark.parametrize('stars', [0, 6, 3.5, 'five', None])
    def test_invalid_stars(self, completed_project, owner, stars):
        with pytest.raises(ValidationError):
            submit_rating(completed_project['projectId'], owner, stars)

    def test_missing_project(self, owner):
        with pytest.raises(NotFoundError):
            submit_rating('nope', owner, 5)


class TestRatingQueries:
    """Tests for rating lookups."""

    def test_check_rating(self, completed_project, owner):
        assert check_rating(completed_project['projectId'], owner) == {'hasRated': False, 'rating': None}
        submit_rating(completed_project['projectId'], owner, 3)
        assert check_rating(completed_project['projectId'], owner)['hasRated'] is True

    def test_ratings_for_user(self, completed_project, owner, seller):
        submit_rating(completed_project['projectId'], owner, 4, 'Solid')

        ratings = list_ratings_for_user(seller.user_id)
        assert len(ratings) == 1
        assert ratings[0]['rater']['name'] == 'Olivia Owner'
        assert ratings[0]['project']['title'] == 'Build a landing page'

    def test_all_ratings_admin_only(self, completed_project, owner, admin):
        submit_rating(completed_project['projectId'], owner, 4)
        assert len(list_all_ratings(admin)) == 1
        with pytest.raises(ForbiddenError):
            list_all_ratings(owner)
