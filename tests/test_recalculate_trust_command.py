from decimal import Decimal
from io import StringIO

from django.core.management import call_command
from django.core.management.base import CommandError
from django.test import TestCase

from marketplace.models import Item, Rating, Transaction, User


class RecalculateTrustCommandTests(TestCase):
    def setUp(self):
        self.seller = User.objects.create_user(
            username='seller@stateu.edu', email='seller@stateu.edu', password='password', name='Seller'
        )
        self.buyer1 = User.objects.create_user(
            username='b1@stateu.edu', email='b1@stateu.edu', password='password', name='Buyer One'
        )
        self.buyer2 = User.objects.create_user(
            username='b2@stateu.edu', email='b2@stateu.edu', password='password', name='Buyer Two'
        )

        self.item = Item.objects.create(
            seller=self.seller,
            name='Desk Lamp',
            category='furniture',
            price=Decimal('15.00'),
            availability_status=Item.SOLD
        )

        # Two completed sales rated 5 and 3
        for buyer, stars in [(self.buyer1, 5), (self.buyer2, 3)]:
            tx = Transaction.objects.create(
                buyer=buyer,
                seller=self.seller,
                item=self.item,
                status=Transaction.COMPLETED,
                escrow_amount=Decimal('15.00')
            )
            Rating.objects.create(user=self.seller, from_user=buyer, transaction=tx, stars=stars)

        # A refunded deal does not count towards completed deals
        Transaction.objects.create(
            buyer=self.buyer1,
            seller=self.seller,
            item=self.item,
            status=Transaction.REFUNDED,
            escrow_amount=Decimal('15.00')
        )

        # Corrupt data intentionally, bypassing the signals
        User.objects.filter(pk=self.seller.pk).update(
            avg_rating=Decimal('1.00'), completed_deals=0, trust_score=99
        )

    def test_recalculates_users(self):
        """Averages, deal counts and trust scores are rebuilt from the tables."""
        call_command('recalculate_trust', stdout=StringIO())

        self.seller.refresh_from_db()
        self.buyer1.refresh_from_db()
        self.buyer2.refresh_from_db()

        self.assertEqual(self.seller.avg_rating, Decimal('4.00'))
        self.assertEqual(self.seller.completed_deals, 2)
        # 32 from ratings + 0.4 volume + 20 reliability
        self.assertEqual(self.seller.trust_score, 52)

        self.assertEqual(self.buyer1.completed_deals, 1)
        self.assertEqual(self.buyer2.completed_deals, 1)
        self.assertEqual(self.buyer1.avg_rating, Decimal('0.00'))

    def test_dry_run_saves_nothing(self):
        out = StringIO()
        call_command('recalculate_trust', '--dry-run', stdout=out)

        output = out.getvalue()
        self.assertIn(f'[DRY-RUN] User {self.seller.id}', output)
        self.assertIn('Dry run completed. No changes saved.', output)

        self.seller.refresh_from_db()
        self.assertEqual(self.seller.avg_rating, Decimal('1.00'))
        self.assertEqual(self.seller.trust_score, 99)

    def test_reports_progress(self):
        out = StringIO()
        call_command('recalculate_trust', '--batch-size', '1', stdout=out)

        output = out.getvalue()
        self.assertIn('Processed 3 users total.', output)
        self.assertIn('Recalculation completed successfully.', output)

        self.seller.refresh_from_db()
        self.assertEqual(self.seller.avg_rating, Decimal('4.00'))

    def test_rejects_invalid_batch_size(self):
        with self.assertRaises(CommandError):
            call_command('recalculate_trust', '--batch-size', '0', stdout=StringIO())
