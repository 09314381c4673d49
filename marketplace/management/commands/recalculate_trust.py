# Recalculate Trust Management Command
from decimal import Decimal

from django.core.management.base import BaseCommand, CommandError
from django.db.models import Avg, Q

from marketplace.models import Rating, Transaction, User


class Command(BaseCommand):
    help = 'Recalculates rating averages, completed deals, trust scores and badges for every user.'

    def add_arguments(self, parser):
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='Run the command without saving changes to the database.',
        )
        parser.add_argument(
            '--batch-size',
            type=int,
            default=1000,
            help='Batch size for bulk processing.',
        )

    def handle(self, *args, **options):
        dry_run = options['dry_run']
        batch_size = options['batch_size']

        if batch_size < 1:
            raise CommandError('--batch-size must be a positive integer.')

        self.recalculate_users(dry_run, batch_size)

        if dry_run:
            self.stdout.write(self.style.SUCCESS('Dry run completed. No changes saved.'))
        else:
            self.stdout.write(self.style.SUCCESS('Recalculation completed successfully.'))

    def recalculate_users(self, dry_run, batch_size):
        self.stdout.write('Recalculating user trust...')
        users = User.objects.order_by('pk').iterator(chunk_size=batch_size)
        fields = ['avg_rating', 'completed_deals', 'trust_score', 'badges']
        updates = []
        count = 0

        for user in users:
            raw_avg = Rating.objects.filter(user=user).aggregate(avg=Avg('stars'))['avg']
            if raw_avg is None:
                new_avg = Decimal('0.00')
            else:
                new_avg = Decimal(str(raw_avg)).quantize(Decimal('0.01'))

            new_deals = Transaction.objects.filter(
                Q(buyer=user) | Q(seller=user),
                status=Transaction.COMPLETED
            ).count()

            old_state = (user.avg_rating, user.completed_deals, user.trust_score, list(user.badges))
            user.avg_rating = new_avg
            user.completed_deals = new_deals
            user.refresh_trust(save=False)
            new_state = (user.avg_rating, user.completed_deals, user.trust_score, list(user.badges))

            if old_state != new_state:
                updates.append(user)
                if dry_run:
                    self.stdout.write(
                        f'  [DRY-RUN] User {user.id} ({user.email}): '
                        f'rating {old_state[0]} -> {new_avg}, deals {old_state[1]} -> {new_deals}, '
                        f'trust {old_state[2]} -> {user.trust_score}'
                    )

            if len(updates) >= batch_size:
                if not dry_run:
                    User.objects.bulk_update(updates, fields)
                updates = []

            count += 1
            if count % 100 == 0:
                self.stdout.write(f'Processed {count} users...')

        if updates and not dry_run:
            User.objects.bulk_update(updates, fields)

        self.stdout.write(f'Processed {count} users total.')
