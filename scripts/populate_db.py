import os
import sys
import django
import random
from decimal import Decimal
from datetime import timedelta
from django.utils import timezone
from faker import Faker

# Add project root to Python path
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

# Set up Django environment
os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'quickgrab.settings')
django.setup()

from marketplace.ai.meetup import CAMPUS_SAFE_SPOTS
from marketplace.ai.pricing import check_price
from marketplace.models import Item, Message, Rating, Transaction, User

fake = Faker()

COLLEGES = {
    'stateu.edu': 'State University',
    'techinstitute.edu': 'Tech Institute',
    'riverside.edu': 'Riverside College',
}


def create_users(num_users=20):
    print(f"Creating {num_users} students...")

    users = []
    for _ in range(num_users):
        domain = random.choice(list(COLLEGES))
        email = f"{fake.unique.user_name()}@{domain}"
        verified = random.random() < 0.7
        user = User.objects.create_user(
            username=email,
            email=email,
            password='password123',
            name=fake.name(),
            college=COLLEGES[domain],
            email_verified=True,
            verification_status=User.VERIFIED if verified else User.UNVERIFIED,
        )
        user.refresh_trust()
        users.append(user)

    print(f"Created {len(users)} students.")
    return users


def create_items(users):
    print("Creating items...")
    items = []

    catalog = {
        'electronics': ["iPhone 12", "Laptop", "Headphones", "Calculator", "Monitor"],
        'books': ["Calculus Textbook", "Chemistry Lab Manual", "Novel Collection"],
        'furniture': ["Desk Lamp", "Study Desk", "Office Chair", "Bookshelf", "Mini Fridge"],
        'clothing': ["Winter Jacket", "Hoodie", "Sneakers"],
    }
    conditions = [choice for choice, _label in Item.CONDITION_CHOICES]

    for user in users:
        # Each student lists 0-3 items
        for _ in range(random.randint(0, 3)):
            category = random.choice(list(catalog))
            name = random.choice(catalog[category])
            condition = random.choice(conditions)
            price = Decimal(random.uniform(5.0, 600.0)).quantize(Decimal('0.01'))

            item = Item(
                seller=user,
                name=name,
                category=category,
                description=fake.sentence(nb_words=12),
                price=price,
                condition=condition,
                photo=f"https://picsum.photos/seed/{fake.uuid4()}/600/400",
            )
            item.apply_price_check(check_price(name, float(price), condition))
            item.save()
            items.append(item)

    print(f"Created {len(items)} items.")
    return items


def create_transactions(users, items):
    print("Creating transactions...")
    transactions = []

    statuses = [
        Transaction.REQUESTED, Transaction.ACCEPTED, Transaction.PAID,
        Transaction.MEETING, Transaction.COMPLETED, Transaction.REFUNDED,
    ]

    for item in random.sample(items, len(items) // 2):
        buyer = random.choice([u for u in users if u != item.seller])
        status = random.choice(statuses)
        now = timezone.now()

        transaction = Transaction.objects.create(
            buyer=buyer,
            seller=item.seller,
            item=item,
            status=status,
            escrow_amount=item.price,
        )

        if status not in (Transaction.REQUESTED, Transaction.ACCEPTED):
            transaction.payment_id = f"pay_{fake.uuid4()[:12]}"
            transaction.countdown_start = now - timedelta(hours=random.randint(1, 48))
            transaction.countdown_end = transaction.countdown_start + timedelta(hours=24)
            transaction.meetup_location = random.choice(CAMPUS_SAFE_SPOTS)['name']
        if status == Transaction.REFUNDED:
            transaction.refund_id = f"ref_{fake.uuid4()[:12]}"
            transaction.refund_reason = "Seller did not show up"
        transaction.save()

        Message.objects.create(
            transaction=transaction,
            sender=buyer,
            content=f"Hi! Is the {item.name} still available?",
        )

        if status == Transaction.COMPLETED:
            item.availability_status = Item.SOLD
        elif status == Transaction.REFUNDED:
            item.availability_status = Item.AVAILABLE
        else:
            item.availability_status = Item.RESERVED
        item.save(update_fields=['availability_status', 'updated_at'])

        transactions.append(transaction)

    print(f"Created {len(transactions)} transactions.")
    return transactions


def create_ratings(transactions):
    print("Creating ratings...")
    ratings = []

    for transaction in transactions:
        if transaction.status != Transaction.COMPLETED:
            continue
        # 70% chance of each party leaving a rating
        for rater, rated in ((transaction.buyer, transaction.seller), (transaction.seller, transaction.buyer)):
            if random.random() < 0.7 and not Rating.objects.filter(user=rated, from_user=rater).exists():
                ratings.append(Rating.objects.create(
                    user=rated,
                    from_user=rater,
                    transaction=transaction,
                    stars=random.randint(3, 5),
                    comment=fake.sentence(),
                ))

    print(f"Created {len(ratings)} ratings.")
    return ratings


def main():
    print("Starting database population...")

    users = create_users(num_users=20)
    items = create_items(users)
    transactions = create_transactions(users, items)
    create_ratings(transactions)

    print("Recalculating trust scores...")
    from django.core.management import call_command
    call_command('recalculate_trust')

    print("Database population completed successfully!")


if __name__ == '__main__':
    main()
