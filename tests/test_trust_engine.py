"""
Tests for the trust score engine and badge rules.

These are pure functions; no database is needed.
"""

import pytest

from marketplace import trust


class TestCalculateTrustScore:
    """Trust Score = verification + ratings + deal volume + reliability."""

    def test_new_unverified_user_gets_reliability_points_only(self):
        score, components = trust.calculate_trust_score('UNVERIFIED', 0, 0, 0)
        assert score == 20
        assert components.verification_score == 0
        assert components.ratings_score == 0
        assert components.deal_volume_score == 0
        assert components.reliability_score == 20

    def test_perfect_profile_scores_100(self):
        score, _ = trust.calculate_trust_score('VERIFIED', 5, 100, 0)
        assert score == 100

    def test_component_breakdown(self):
        score, components = trust.calculate_trust_score('VERIFIED', 4.5, 10, 0.1)
        assert components.as_dict() == {
            'verification_score': 20,
            'ratings_score': 36,
            'deal_volume_score': 2,
            'reliability_score': 18,
        }
        assert score == 76

    @pytest.mark.parametrize('status', ['UNVERIFIED', 'PENDING', 'REJECTED'])
    def test_only_verified_status_earns_verification_points(self, status):
        _, components = trust.calculate_trust_score(status, 0, 0, 0)
        assert components.verification_score == 0

    def test_deal_volume_saturates(self):
        _, components = trust.calculate_trust_score('VERIFIED', 0, 500, 0)
        assert components.deal_volume_score == 20

    def test_score_is_clamped_for_out_of_range_inputs(self):
        score, components = trust.calculate_trust_score('VERIFIED', 9, 1000, 1.5)
        assert components.ratings_score == 40
        assert components.reliability_score == 0
        assert 0 <= score <= 100

    def test_accepts_decimal_and_none_inputs(self):
        from decimal import Decimal
        score, _ = trust.calculate_trust_score('VERIFIED', Decimal('5.00'), None, None)
        assert score == 80


BASELINES = [
    ('UNVERIFIED', 0, 0, 0),
    ('UNVERIFIED', 3.2, 7, 0.4),
    ('VERIFIED', 4.1, 35, 0.15),
    ('VERIFIED', 5, 100, 1),
]


def scores(values, build):
    return [trust.calculate_trust_score(*build(value))[0] for value in values]


class TestTrustScoreMonotonicity:

    @pytest.mark.parametrize('status,rating,deals,cancel', BASELINES)
    def test_non_decreasing_in_rating(self, status, rating, deals, cancel):
        sweep = scores([0, 0.5, 1, 1.7, 2.5, 3, 3.9, 4.4, 4.8, 5],
                       lambda value: (status, value, deals, cancel))
        assert sweep == sorted(sweep)
        assert all(0 <= score <= 100 for score in sweep)

    @pytest.mark.parametrize('status,rating,deals,cancel', BASELINES)
    def test_non_decreasing_in_completed_deals(self, status, rating, deals, cancel):
        sweep = scores([0, 1, 3, 10, 25, 50, 75, 99, 100],
                       lambda value: (status, rating, value, cancel))
        assert sweep == sorted(sweep)

    @pytest.mark.parametrize('status,rating,deals,cancel', BASELINES)
    def test_non_increasing_in_cancellation_rate(self, status, rating, deals, cancel):
        sweep = scores([0, 0.05, 0.1, 0.25, 0.5, 0.75, 0.9, 1],
                       lambda value: (status, rating, deals, value))
        assert sweep == sorted(sweep, reverse=True)

    @pytest.mark.parametrize('status,rating,deals,cancel', BASELINES)
    @pytest.mark.parametrize('other', ['UNVERIFIED', 'PENDING', 'REJECTED'])
    def test_verified_never_scores_lower(self, status, rating, deals, cancel, other):
        verified, _ = trust.calculate_trust_score('VERIFIED', rating, deals, cancel)
        unverified, _ = trust.calculate_trust_score(other, rating, deals, cancel)
        assert verified >= unverified


class TestBadges:

    def test_trusted_seller_and_perfect_success(self):
        badges = trust.earned_badges(50, 4.8, 0)
        assert badges == ['🏆 Trusted Seller', '🎯 100% Success Rate']

    def test_trusted_seller_needs_rating(self):
        assert '🏆 Trusted Seller' not in trust.earned_badges(60, 4.7, 0)

    def test_perfect_success_needs_zero_cancellations(self):
        assert trust.earned_badges(10, 4.0, 0) == ['🎯 100% Success Rate']
        assert trust.earned_badges(10, 4.0, 0.1) == []

    def test_optional_signals_unlock_their_badges(self):
        badges = trust.earned_badges(0, 0, 0, avg_response_time=120, fair_price_rate=0.95)
        assert '⚡ Quick Responder' in badges
        assert '💎 Fair Pricer' in badges

    def test_optional_badges_need_their_signal(self):
        eligibility = trust.check_badge_eligibility(0, 0, 0)
        by_name = {entry.badge: entry.eligible for entry in eligibility}
        assert by_name['Quick Responder'] is False
        assert by_name['Fair Pricer'] is False


class TestTrustLevel:

    @pytest.mark.parametrize('score,level', [
        (95, 'Exceptional'),
        (90, 'Exceptional'),
        (70, 'Trusted'),
        (50, 'Established'),
        (20, 'New'),
        (19, 'Unverified'),
    ])
    def test_levels(self, score, level):
        assert trust.trust_level(score)['level'] == level


class TestCancellationRate:

    def test_first_deal_refunded(self):
        assert trust.cancellation_rate_after_refund(0, 0) == 1.0

    def test_refund_after_successful_deals(self):
        assert trust.cancellation_rate_after_refund(0, 3) == pytest.approx(0.25)

    def test_completion_dilutes_rate(self):
        assert trust.cancellation_rate_after_completion(0.25, 3) == pytest.approx(0.1875)

    def test_completion_keeps_zero_rate(self):
        assert trust.cancellation_rate_after_completion(0, 0) == 0
