"""
Trust score engine for QuickGrab users.

Trust Score = verification (0-20) + ratings (0-40) + deal volume (0-20) + reliability (0-20)

All functions here are pure: they take plain numbers and return plain values,
so they can be evaluated against a stored user row or against hypothetical
inputs alike.
"""

from dataclasses import dataclass


VERIFIED = 'VERIFIED'

VERIFICATION_POINTS = 20
RATINGS_POINTS = 40
VOLUME_POINTS = 20
RELIABILITY_POINTS = 20

# Deal volume saturates at this many completed deals
VOLUME_SATURATION_DEALS = 100

QUICK_RESPONDER_MAX_SECONDS = 300

BADGES = {
    'TRUSTED_SELLER': {'name': 'Trusted Seller', 'emoji': '🏆', 'min_deals': 50, 'min_rating': 4.8},
    'QUICK_RESPONDER': {'name': 'Quick Responder', 'emoji': '⚡', 'avg_response_time': QUICK_RESPONDER_MAX_SECONDS},
    'FAIR_PRICER': {'name': 'Fair Pricer', 'emoji': '💎', 'min_fair_price_rate': 0.9},
    'PERFECT_SUCCESS': {'name': '100% Success Rate', 'emoji': '🎯', 'min_deals': 10},
}


@dataclass(frozen=True)
class TrustScoreComponents:
    verification_score: int
    ratings_score: int
    deal_volume_score: int
    reliability_score: int

    def as_dict(self):
        return {
            'verification_score': self.verification_score,
            'ratings_score': self.ratings_score,
            'deal_volume_score': self.deal_volume_score,
            'reliability_score': self.reliability_score,
        }


@dataclass(frozen=True)
class BadgeEligibility:
    badge: str
    emoji: str
    eligible: bool
    description: str

    @property
    def label(self):
        return f'{self.emoji} {self.badge}'


def _clamp(value, low, high):
    return max(low, min(high, value))


def calculate_trust_score(verification_status, avg_rating, completed_deals, cancellation_rate):
    """
    Calculate a user's trust score.

    Args:
        verification_status: One of UNVERIFIED, PENDING, VERIFIED, REJECTED
        avg_rating: Mean star rating received (0-5)
        completed_deals: Number of completed transactions
        cancellation_rate: Fraction of failed deals in [0, 1]

    Returns:
        tuple: (score: int in [0, 100], components: TrustScoreComponents)
    """
    avg_rating = float(avg_rating or 0)
    completed_deals = int(completed_deals or 0)
    cancellation_rate = float(cancellation_rate or 0)

    verification_score = VERIFICATION_POINTS if verification_status == VERIFIED else 0
    ratings_score = _clamp(avg_rating / 5 * RATINGS_POINTS, 0, RATINGS_POINTS)
    deal_volume_score = _clamp(
        completed_deals / VOLUME_SATURATION_DEALS * VOLUME_POINTS, 0, VOLUME_POINTS
    )
    reliability_score = _clamp(
        RELIABILITY_POINTS * (1 - cancellation_rate), 0, RELIABILITY_POINTS
    )

    total = verification_score + ratings_score + deal_volume_score + reliability_score
    score = int(_clamp(round(total), 0, 100))

    components = TrustScoreComponents(
        verification_score=verification_score,
        ratings_score=round(ratings_score),
        deal_volume_score=round(deal_volume_score),
        reliability_score=round(reliability_score),
    )
    return score, components


def check_badge_eligibility(completed_deals, avg_rating, cancellation_rate,
                            avg_response_time=None, fair_price_rate=None):
    """
    Evaluate every badge against the given account signals.

    avg_response_time and fair_price_rate are optional; when they are not
    supplied the corresponding badges are never eligible.

    Returns:
        list[BadgeEligibility]: One entry per badge, in display order
    """
    avg_rating = float(avg_rating or 0)
    completed_deals = int(completed_deals or 0)
    cancellation_rate = float(cancellation_rate or 0)

    trusted = BADGES['TRUSTED_SELLER']
    quick = BADGES['QUICK_RESPONDER']
    fair = BADGES['FAIR_PRICER']
    perfect = BADGES['PERFECT_SUCCESS']

    return [
        BadgeEligibility(
            badge=trusted['name'],
            emoji=trusted['emoji'],
            eligible=completed_deals >= trusted['min_deals'] and avg_rating >= trusted['min_rating'],
            description=f"Complete {trusted['min_deals']}+ deals with {trusted['min_rating']}+ rating",
        ),
        BadgeEligibility(
            badge=quick['name'],
            emoji=quick['emoji'],
            eligible=avg_response_time is not None and avg_response_time <= quick['avg_response_time'],
            description='Respond within 5 minutes on average',
        ),
        BadgeEligibility(
            badge=fair['name'],
            emoji=fair['emoji'],
            eligible=fair_price_rate is not None and fair_price_rate >= fair['min_fair_price_rate'],
            description='90%+ of listings rated as fair price',
        ),
        BadgeEligibility(
            badge=perfect['name'],
            emoji=perfect['emoji'],
            eligible=completed_deals >= perfect['min_deals'] and cancellation_rate == 0,
            description=f"Complete {perfect['min_deals']}+ deals with 0% cancellation",
        ),
    ]


def earned_badges(completed_deals, avg_rating, cancellation_rate,
                  avg_response_time=None, fair_price_rate=None):
    """Return the labels of every badge the user currently qualifies for."""
    return [
        eligibility.label
        for eligibility in check_badge_eligibility(
            completed_deals,
            avg_rating,
            cancellation_rate,
            avg_response_time=avg_response_time,
            fair_price_rate=fair_price_rate,
        )
        if eligibility.eligible
    ]


def trust_level(score):
    """
    Map a trust score to a human readable level.

    Returns:
        dict: level and description
    """
    if score >= 90:
        return {'level': 'Exceptional', 'description': 'Highly trusted community member'}
    if score >= 70:
        return {'level': 'Trusted', 'description': 'Reliable marketplace participant'}
    if score >= 50:
        return {'level': 'Established', 'description': 'Building trust in the community'}
    if score >= 20:
        return {'level': 'New', 'description': 'New to the platform'}
    return {'level': 'Unverified', 'description': 'Not yet verified'}


def cancellation_rate_after_completion(cancellation_rate, completed_deals):
    """Rebalance the cancellation rate for one more successful deal."""
    completed_deals = int(completed_deals or 0)
    return float(cancellation_rate or 0) * completed_deals / (completed_deals + 1)


def cancellation_rate_after_refund(cancellation_rate, completed_deals):
    """Count one more failed deal out of (completed_deals + 1) total."""
    completed_deals = int(completed_deals or 0)
    rate = (float(cancellation_rate or 0) * completed_deals + 1) / (completed_deals + 1)
    return min(rate, 1.0)
