"""
Tests for the signals that keep rating averages and trust scores current.
"""

from decimal import Decimal
from unittest import mock

from django.contrib.auth import get_user_model
from django.db import transaction
from django.test import TransactionTestCase

from marketplace.models import Item, Rating, Transaction

User = get_user_model()


class RatingSignalTests(TransactionTestCase):
    """
    Uses TransactionTestCase so that rollbacks of the rating write are real.
    """

    def setUp(self):
        self.seller = User.objects.create_user(
            username='seller@stateu.edu',
            email='seller@stateu.edu',
            password='testpass123',
            name='Seller'
        )
        self.item = Item.objects.create(
            seller=self.seller,
            name='Calculator',
            category='electronics',
            price=Decimal('20.00'),
            availability_status=Item.SOLD
        )
        self.buyers = [
            User.objects.create_user(
                username=f'buyer{n}@stateu.edu',
                email=f'buyer{n}@stateu.edu',
                password='testpass123',
                name=f'Buyer {n}'
            )
            for n in range(3)
        ]

    def rate(self, buyer, stars):
        tx = Transaction.objects.create(
            buyer=buyer,
            seller=self.seller,
            item=self.item,
            status=Transaction.COMPLETED,
            escrow_amount=Decimal('20.00')
        )
        return Rating.objects.create(user=self.seller, from_user=buyer, transaction=tx, stars=stars)

    def test_creating_rating_updates_average_and_trust(self):
        self.rate(self.buyers[0], 4)

        self.seller.refresh_from_db()
        self.assertEqual(self.seller.avg_rating, Decimal('4.00'))
        # 32 from ratings + 20 reliability
        self.assertEqual(self.seller.trust_score, 52)

    def test_multiple_ratings_are_averaged(self):
        for buyer, stars in zip(self.buyers, [5, 4, 4]):
            self.rate(buyer, stars)

        self.seller.refresh_from_db()
        self.assertEqual(self.seller.avg_rating, Decimal('4.33'))

    def test_updating_rating_recalculates(self):
        rating = self.rate(self.buyers[0], 2)

        rating.stars = 5
        rating.save()

        self.seller.refresh_from_db()
        self.assertEqual(self.seller.avg_rating, Decimal('5.00'))
        self.assertEqual(self.seller.trust_score, 60)

    def test_deleting_rating_recalculates(self):
        self.rate(self.buyers[0], 5)
        last = self.rate(self.buyers[1], 1)

        last.delete()

        self.seller.refresh_from_db()
        self.assertEqual(self.seller.avg_rating, Decimal('5.00'))

    def test_deleting_last_rating_resets_average(self):
        rating = self.rate(self.buyers[0], 3)

        rating.delete()

        self.seller.refresh_from_db()
        self.assertEqual(self.seller.avg_rating, Decimal('0.00'))
        self.assertEqual(self.seller.trust_score, 20)

    def test_rater_is_not_affected(self):
        self.rate(self.buyers[0], 5)

        self.buyers[0].refresh_from_db()
        self.assertEqual(self.buyers[0].avg_rating, Decimal('0.00'))

    def test_failure_rolls_back_rating(self):
        tx = Transaction.objects.create(
            buyer=self.buyers[0],
            seller=self.seller,
            item=self.item,
            status=Transaction.COMPLETED,
            escrow_amount=Decimal('20.00')
        )

        with mock.patch.object(User, 'refresh_trust', side_effect=RuntimeError('boom')):
            with self.assertRaises(RuntimeError):
                with transaction.atomic():
                    Rating.objects.create(
                        user=self.seller, from_user=self.buyers[0], transaction=tx, stars=5
                    )

        self.assertFalse(Rating.objects.exists())
        self.seller.refresh_from_db()
        self.assertEqual(self.seller.avg_rating, Decimal('0.00'))

    def test_trusted_seller_badge_follows_the_average(self):
        User.objects.filter(pk=self.seller.pk).update(completed_deals=50)

        rating = self.rate(self.buyers[0], 4)
        self.seller.refresh_from_db()
        self.assertEqual(self.seller.badges, ['🎯 100% Success Rate'])

        rating.stars = 5
        rating.save()
        self.seller.refresh_from_db()
        self.assertEqual(self.seller.badges, ['🏆 Trusted Seller', '🎯 100% Success Rate'])

        # 5 and 4 average 4.50, below the 4.8 threshold
        self.rate(self.buyers[1], 4)
        self.seller.refresh_from_db()
        self.assertEqual(self.seller.avg_rating, Decimal('4.50'))
        self.assertEqual(self.seller.badges, ['🎯 100% Success Rate'])
