"""
Tests for model rules: transitions, refunds, roles, dispute resolution.
"""

from datetime import timedelta
from decimal import Decimal

import pytest
from django.core.exceptions import ValidationError
from django.db import IntegrityError, transaction
from django.utils import timezone

from marketplace.ai.disputes import BUYER_FAVOR, NEEDS_REVIEW, SPLIT, DisputeResolution
from marketplace.ai.pricing import PriceCheckResult
from marketplace.models import Dispute, Item, Rating, Transaction, User


def resolution(decision, confidence):
    return DisputeResolution(
        decision=decision,
        confidence=confidence,
        reasoning='Evidence reviewed.',
        suggested_action='Refund buyer.',
    )


@pytest.mark.django_db
class TestUserModel:

    def test_email_is_lowercased_and_used_as_username(self):
        user = User(email='Mixed@StateU.EDU', name='Mixed')
        user.set_password('SecurePass123!')
        user.save()

        assert user.email == 'mixed@stateu.edu'
        assert user.username == 'mixed@stateu.edu'

    def test_display_name_falls_back_to_email(self, create_user):
        user = create_user('quiet@stateu.edu', name='')
        assert user.display_name == 'quiet@stateu.edu'

    def test_compute_trust(self, create_user):
        user = create_user(
            'veteran@stateu.edu',
            verification_status=User.VERIFIED,
            avg_rating=Decimal('4.90'),
            completed_deals=60,
            cancellation_rate=0.0,
        )

        score, badges = user.compute_trust()

        # 20 + 39.2 + 12 + 20
        assert score == 91
        assert badges == ['🏆 Trusted Seller', '🎯 100% Success Rate']

    def test_refresh_trust_persists(self, create_user):
        user = create_user('fresh@stateu.edu')
        User.objects.filter(pk=user.pk).update(trust_score=0)

        user.refresh_trust()

        user.refresh_from_db()
        assert user.trust_score == 20


@pytest.mark.django_db
class TestItemModel:

    def test_apply_price_check(self, item):
        item.apply_price_check(PriceCheckResult('Overpriced', 150, 30, 'Too high.'))
        assert item.ai_price_rating == 'Overpriced'
        assert item.avg_campus_price == Decimal('30')

    def test_blank_name_fails_validation(self, seller):
        item = Item(seller=seller, name='  ', category='books', price=Decimal('5.00'))
        with pytest.raises(ValidationError):
            item.full_clean()

    def test_non_positive_price_fails_validation(self, seller):
        item = Item(seller=seller, name='Book', category='books', price=Decimal('0.00'))
        with pytest.raises(ValidationError):
            item.full_clean()

    def test_too_many_photos_fails_validation(self, seller):
        item = Item(
            seller=seller, name='Book', category='books', price=Decimal('5.00'),
            photos=[f'https://img.example.com/{n}.jpg' for n in range(6)]
        )
        with pytest.raises(ValidationError):
            item.full_clean()


@pytest.mark.django_db
class TestTransactionModel:

    @pytest.mark.parametrize('current, target, allowed', [
        (Transaction.REQUESTED, Transaction.ACCEPTED, True),
        (Transaction.REQUESTED, Transaction.PAID, False),
        (Transaction.ACCEPTED, Transaction.PAID, True),
        (Transaction.PAID, Transaction.MEETING, True),
        (Transaction.PAID, Transaction.COMPLETED, True),
        (Transaction.MEETING, Transaction.COMPLETED, True),
        (Transaction.MEETING, Transaction.REFUNDED, True),
        (Transaction.MEETING, Transaction.PAID, False),
        (Transaction.COMPLETED, Transaction.REFUNDED, False),
        (Transaction.REFUNDED, Transaction.ACCEPTED, False),
    ])
    def test_transitions(self, make_transaction, current, target, allowed):
        tx = make_transaction(status=current)
        is_valid, message = tx.can_transition_to(target)
        assert is_valid is allowed
        assert (message is None) is allowed

    def test_terminal_message(self, make_transaction):
        tx = make_transaction(status=Transaction.COMPLETED)
        assert tx.can_transition_to(Transaction.REFUNDED) == (False, 'Transaction is already completed.')

    def test_refund_from_paid_depends_on_countdown(self, make_transaction):
        now = timezone.now()
        tx = make_transaction(
            status=Transaction.PAID, countdown_start=now, countdown_end=now + timedelta(hours=24)
        )

        assert tx.refund_available(now) is False
        assert tx.can_transition_to(Transaction.REFUNDED, now)[0] is False
        later = now + timedelta(hours=25)
        assert tx.refund_available(later) is True
        assert tx.can_transition_to(Transaction.REFUNDED, later) == (True, None)

    def test_paid_without_countdown_is_not_refundable(self, make_transaction):
        tx = make_transaction(status=Transaction.PAID)
        assert tx.refund_available() is False

    def test_roles(self, make_transaction, buyer, seller, outsider):
        tx = make_transaction()

        assert tx.role_of(buyer) == 'buyer'
        assert tx.role_of(seller) == 'seller'
        assert tx.role_of(outsider) is None
        assert tx.is_participant(outsider) is False
        assert tx.other_party_id(buyer) == seller.id
        assert tx.other_party_id(seller) == buyer.id

    def test_one_active_transaction_per_buyer_and_item(self, make_transaction, buyer, seller, item):
        make_transaction()
        with pytest.raises(IntegrityError):
            with transaction.atomic():
                Transaction.objects.create(
                    buyer=buyer, seller=seller, item=item, escrow_amount=item.price
                )

    def test_countdown_window(self):
        start = timezone.now()
        assert Transaction.countdown_window(start, 24) == (start, start + timedelta(hours=24))


@pytest.mark.django_db
class TestRatingModel:

    def test_cannot_rate_yourself(self, make_transaction, buyer):
        tx = make_transaction(status=Transaction.COMPLETED)
        rating = Rating(user=buyer, from_user=buyer, transaction=tx, stars=5)
        with pytest.raises(ValidationError):
            rating.full_clean()

    def test_one_rating_per_rater(self, make_transaction, buyer, seller):
        tx = make_transaction(status=Transaction.COMPLETED)
        Rating.objects.create(user=seller, from_user=buyer, transaction=tx, stars=5)
        with pytest.raises(IntegrityError):
            with transaction.atomic():
                Rating.objects.create(user=seller, from_user=buyer, transaction=tx, stars=1)


@pytest.mark.django_db
class TestDisputeModel:

    @pytest.fixture
    def dispute(self, make_transaction, buyer):
        tx = make_transaction(status=Transaction.PAID)
        return Dispute(transaction=tx, raised_by=buyer, evidence_text='Item never arrived at all.')

    def test_low_confidence_stays_pending(self, dispute):
        assert dispute.apply_resolution(resolution(BUYER_FAVOR, 80), 80) is False
        assert dispute.decision == Dispute.PENDING
        assert dispute.confidence == 80
        assert dispute.resolved_at is None
        assert dispute.ai_summary == 'Evidence reviewed.'

    def test_confident_resolution_is_final(self, dispute):
        assert dispute.apply_resolution(resolution(SPLIT, 81), 80) is True
        assert dispute.decision == Dispute.SPLIT
        assert dispute.resolved_at is not None

    def test_confident_needs_review_keeps_pending(self, dispute):
        assert dispute.apply_resolution(resolution(NEEDS_REVIEW, 95), 80) is False
        assert dispute.decision == Dispute.PENDING
        assert dispute.resolved_at is not None
