"""
Django signals keeping a user's rating average and trust score in step with
the ratings they receive.

The receivers run inside the transaction that saved or deleted the Rating;
any failure re-raises so the rating write is rolled back with it.
"""

import logging
from decimal import Decimal

from django.db import transaction
from django.db.models import Avg
from django.db.models.signals import post_delete, post_save
from django.dispatch import receiver

from .models import Rating, User

logger = logging.getLogger(__name__)


def recalculate_user_rating(user_id):
    """
    Recompute avg_rating from every rating received, then trust and badges.

    Returns:
        User: The updated user, or None if the user no longer exists
    """
    with transaction.atomic():
        user = User.objects.select_for_update().filter(pk=user_id).first()
        if user is None:
            return None

        avg_rating = Rating.objects.filter(user_id=user_id).aggregate(avg=Avg('stars'))['avg']
        user.avg_rating = (
            Decimal(str(avg_rating)).quantize(Decimal('0.01')) if avg_rating else Decimal('0.00')
        )
        user.refresh_trust(save=False)
        user.save(update_fields=['avg_rating', 'trust_score', 'badges', 'updated_at'])
        return user


@receiver(post_save, sender=Rating)
def update_trust_on_rating_save(sender, instance, created, **kwargs):
    try:
        user = recalculate_user_rating(instance.user_id)
        action = "created" if created else "updated"
        if user is not None:
            logger.info(
                f"Updated rating for user {user.pk} after rating {instance.pk} ({action}): "
                f"avg={user.avg_rating}, trust={user.trust_score}"
            )
    except Exception as e:
        logger.error(
            f"Error updating trust for rating {instance.pk}: {e}",
            exc_info=True
        )
        raise


@receiver(post_delete, sender=Rating)
def update_trust_on_rating_delete(sender, instance, **kwargs):
    try:
        user = recalculate_user_rating(instance.user_id)
        if user is not None:
            logger.info(
                f"Updated rating for user {user.pk} after deleting rating {instance.pk}: "
                f"avg={user.avg_rating}, trust={user.trust_score}"
            )
    except Exception as e:
        logger.error(
            f"Error updating trust after deleting rating {instance.pk}: {e}",
            exc_info=True
        )
        raise
