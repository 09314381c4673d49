"""
Transaction lifecycle drivers.

Each state change is a conditional UPDATE on the expected pre-state, so two
concurrent requests for the same transition resolve to one success and one
conflict. Side effects (item availability, counterparty statistics, trust
scores, system messages) are written inside the same database transaction.

Guards are evaluated in a fixed order: the transaction exists (404), the
caller takes part in it (403), its status allows the action (409), the caller
has the role the action needs (403).
"""

import logging
import uuid

from django.conf import settings
from django.db import IntegrityError
from django.db import transaction as db_transaction
from django.utils import timezone
from rest_framework.exceptions import NotFound, PermissionDenied, ValidationError

from . import trust
from .ai.disputes import DisputeEvidence
from .exceptions import StateConflict
from .models import Dispute, Item, Message, Transaction, User


logger = logging.getLogger(__name__)

BUYER = 'buyer'
SELLER = 'seller'


def _config(key):
    return settings.QUICKGRAB[key]


def get_participant_transaction(transaction_id, user):
    """
    Load a transaction the user takes part in.

    Raises:
        NotFound: Unknown transaction
        PermissionDenied: User is neither buyer nor seller
    """
    tx = (
        Transaction.objects
        .select_related('item', 'buyer', 'seller')
        .filter(pk=transaction_id)
        .first()
    )
    if tx is None:
        raise NotFound('Transaction not found')
    if not tx.is_participant(user):
        logger.warning(
            f"User {user.pk} attempted to access transaction {transaction_id} "
            f"without being a participant"
        )
        raise PermissionDenied('You are not part of this transaction')
    return tx


def _require_transition(tx, new_status, action, error=None):
    is_valid, message = tx.can_transition_to(new_status)
    if not is_valid:
        raise StateConflict(
            error or f'Cannot {action} this transaction',
            details={'status': tx.status, 'reason': message},
        )


def _require_role(tx, user, role, action):
    if tx.role_of(user) != role:
        raise PermissionDenied(f'Only the {role} can {action} this transaction')


def _advance(tx, expected_statuses, **fields):
    """
    Conditionally update the transaction row from one of expected_statuses.

    Raises:
        StateConflict: Another request changed the status first
    """
    fields['updated_at'] = timezone.now()
    updated = (
        Transaction.objects
        .filter(pk=tx.pk, status__in=expected_statuses)
        .update(**fields)
    )
    if not updated:
        raise StateConflict(
            'Transaction status changed, please retry',
            details={'expected': list(expected_statuses)},
        )
    for name, value in fields.items():
        setattr(tx, name, value)


def _set_item_status(item_id, status, expected=None):
    queryset = Item.objects.filter(pk=item_id)
    if expected is not None:
        queryset = queryset.filter(availability_status=expected)
    return queryset.update(availability_status=status, updated_at=timezone.now())


def request_purchase(buyer, item_id):
    """
    Open a REQUESTED transaction for an item and reserve the item.

    Raises:
        NotFound: Unknown item
        ValidationError: Buyer is the seller
        StateConflict: Item not available, or buyer already has an active request
    """
    item = Item.objects.filter(pk=item_id).first()
    if item is None:
        raise NotFound('Item not found')

    if item.seller_id == buyer.pk:
        raise ValidationError('You cannot buy your own item')

    with db_transaction.atomic():
        if Transaction.objects.filter(
            buyer=buyer, item=item, status__in=Transaction.ACTIVE_STATUSES
        ).exists():
            logger.warning(
                f"Duplicate purchase request by user {buyer.pk} for item {item.pk}"
            )
            raise StateConflict('You already have an active request for this item')

        if not _set_item_status(item.pk, Item.RESERVED, expected=Item.AVAILABLE):
            raise StateConflict(
                'Item is not available',
                details={'availability_status': Item.objects.get(pk=item.pk).availability_status},
            )

        try:
            with db_transaction.atomic():
                tx = Transaction.objects.create(
                    buyer=buyer,
                    seller_id=item.seller_id,
                    item=item,
                    status=Transaction.REQUESTED,
                    escrow_amount=item.price,
                )
        except IntegrityError:
            raise StateConflict('You already have an active request for this item')

    item.availability_status = Item.RESERVED
    logger.info(
        f"Purchase requested: transaction {tx.pk}, item {item.pk}, buyer {buyer.pk}"
    )
    return tx


def accept(transaction_id, user, classifier):
    """Seller accepts a request; a system message with meetup suggestions is posted."""
    tx = get_participant_transaction(transaction_id, user)
    _require_transition(tx, Transaction.ACCEPTED, 'accept')
    _require_role(tx, user, SELLER, 'accept')

    suggestion = classifier.suggest_meetup(tx.item.name)

    with db_transaction.atomic():
        _advance(tx, [Transaction.REQUESTED], status=Transaction.ACCEPTED)
        Message.objects.create(
            transaction=tx,
            sender=None,
            content=suggestion.as_message(),
            is_ai_generated=True,
        )

    logger.info(f"Transaction {tx.pk} accepted by seller {user.pk}")
    return tx


def pay(transaction_id, user, payment_id=None):
    """Buyer pays into escrow; the meetup countdown starts."""
    tx = get_participant_transaction(transaction_id, user)
    _require_transition(tx, Transaction.PAID, 'pay for')
    _require_role(tx, user, BUYER, 'pay for')

    start, end = Transaction.countdown_window(timezone.now(), _config('MEETUP_TIMEOUT_HOURS'))
    _advance(
        tx,
        [Transaction.ACCEPTED],
        status=Transaction.PAID,
        countdown_start=start,
        countdown_end=end,
        payment_id=payment_id or f'pay_{uuid.uuid4().hex[:16]}',
    )

    logger.info(f"Transaction {tx.pk} paid by buyer {user.pk}, countdown ends {end.isoformat()}")
    return tx


def arrange_meetup(transaction_id, user, location):
    """
    Set the meetup location.

    From PAID this moves the transaction to MEETING; in REQUESTED, ACCEPTED
    and MEETING only the location changes.
    """
    tx = get_participant_transaction(transaction_id, user)

    if tx.status == Transaction.PAID:
        _require_transition(tx, Transaction.MEETING, 'arrange a meetup for')
        _advance(tx, [Transaction.PAID], status=Transaction.MEETING, meetup_location=location)
        logger.info(f"Transaction {tx.pk} moved to MEETING at '{location}' by user {user.pk}")
    elif tx.status in Transaction.MEETUP_EDITABLE_STATUSES:
        _advance(tx, [tx.status], meetup_location=location)
        logger.info(f"Meetup location for transaction {tx.pk} set by user {user.pk}")
    else:
        raise StateConflict(
            'Cannot arrange a meetup for this transaction',
            details={'status': tx.status},
        )
    return tx


def confirm_receipt(transaction_id, user):
    """
    Buyer confirms receipt: the deal completes, the item is sold and both
    parties' statistics and trust are updated.
    """
    tx = get_participant_transaction(transaction_id, user)
    _require_transition(tx, Transaction.COMPLETED, 'confirm')
    _require_role(tx, user, BUYER, 'confirm')

    with db_transaction.atomic():
        _advance(tx, [Transaction.PAID, Transaction.MEETING], status=Transaction.COMPLETED)
        _set_item_status(tx.item_id, Item.SOLD)

        seller = User.objects.select_for_update().get(pk=tx.seller_id)
        seller.cancellation_rate = trust.cancellation_rate_after_completion(
            seller.cancellation_rate, seller.completed_deals
        )
        seller.completed_deals += 1
        seller.refresh_trust(save=False)
        seller.save(update_fields=[
            'completed_deals', 'cancellation_rate', 'trust_score', 'badges', 'updated_at'
        ])

        buyer = User.objects.select_for_update().get(pk=tx.buyer_id)
        buyer.completed_deals += 1
        buyer.refresh_trust(save=False)
        buyer.save(update_fields=['completed_deals', 'trust_score', 'badges', 'updated_at'])

    tx.item.availability_status = Item.SOLD
    logger.info(
        f"Transaction {tx.pk} completed: seller {seller.pk} trust {seller.trust_score}, "
        f"buyer {buyer.pk} trust {buyer.trust_score}"
    )
    return tx


def refund(transaction_id, user, reason=''):
    """
    Buyer takes the escrow back: allowed from MEETING, or from PAID once the
    meetup countdown has expired. The item is relisted and the seller's
    cancellation rate goes up.
    """
    tx = get_participant_transaction(transaction_id, user)
    _require_transition(tx, Transaction.REFUNDED, 'refund', error='Refund not available')
    _require_role(tx, user, BUYER, 'refund')

    with db_transaction.atomic():
        _advance(
            tx,
            [tx.status],
            status=Transaction.REFUNDED,
            refund_id=f'ref_{uuid.uuid4().hex[:16]}',
            refund_reason=reason or '',
        )
        _set_item_status(tx.item_id, Item.AVAILABLE)

        seller = User.objects.select_for_update().get(pk=tx.seller_id)
        seller.cancellation_rate = trust.cancellation_rate_after_refund(
            seller.cancellation_rate, seller.completed_deals
        )
        seller.refresh_trust(save=False)
        seller.save(update_fields=['cancellation_rate', 'trust_score', 'badges', 'updated_at'])

    tx.item.availability_status = Item.AVAILABLE
    logger.info(
        f"Transaction {tx.pk} refunded to buyer {user.pk}; seller {seller.pk} "
        f"cancellation rate {seller.cancellation_rate:.3f}"
    )
    return tx


def raise_dispute(transaction_id, user, evidence_text, photos, classifier):
    """
    Open the single dispute a PAID or MEETING transaction may have and let the
    classifier arbitrate it.

    The dispute is auto-resolved only when the classifier's confidence exceeds
    DISPUTE_AUTO_RESOLVE_THRESHOLD; otherwise it stays PENDING.
    """
    tx = get_participant_transaction(transaction_id, user)

    if Dispute.objects.filter(transaction=tx).exists():
        raise StateConflict('A dispute already exists for this transaction')

    if tx.status not in Transaction.DISPUTABLE_STATUSES:
        raise StateConflict(
            'Disputes can only be raised on paid transactions',
            details={'status': tx.status},
        )

    photos = photos or []
    is_buyer = tx.role_of(user) == BUYER
    evidence = DisputeEvidence(
        buyer_claim=evidence_text if is_buyer else '',
        seller_claim='' if is_buyer else evidence_text,
        message_history=[
            message.content
            for message in tx.messages.filter(is_ai_generated=False).order_by('created_at', 'id')
        ],
        photo_count=len(photos),
        timeline={
            'created': tx.created_at.isoformat(),
            'paid': tx.countdown_start.isoformat() if tx.countdown_start else None,
            'meetup_deadline': tx.countdown_end.isoformat() if tx.countdown_end else None,
            'last_update': tx.updated_at.isoformat(),
        },
    )
    resolution = classifier.resolve_dispute(tx.pk, evidence)

    dispute = Dispute(
        transaction=tx,
        raised_by=user,
        evidence_text=evidence_text,
        photos=photos,
    )
    auto_resolved = dispute.apply_resolution(
        resolution, _config('DISPUTE_AUTO_RESOLVE_THRESHOLD')
    )

    try:
        with db_transaction.atomic():
            dispute.save()
    except IntegrityError:
        raise StateConflict('A dispute already exists for this transaction')

    logger.info(
        f"Dispute {dispute.pk} raised on transaction {tx.pk} by user {user.pk}: "
        f"{resolution.decision} ({resolution.confidence}%), "
        f"{'auto-resolved' if auto_resolved else 'pending review'}"
    )
    return dispute
