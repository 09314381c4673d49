"""
Data model for the QuickGrab campus marketplace.
"""

from datetime import timedelta
from decimal import Decimal

from django.contrib.auth.models import AbstractUser
from django.core.exceptions import ValidationError
from django.core.validators import MinValueValidator, MaxValueValidator
from django.db import models
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

from . import trust
from .validators import validate_photo_urls, validate_positive_price


class User(AbstractUser):
    """
    Marketplace account extending Django's AbstractUser.

    The email address is the login identifier; username is kept equal to it.

    Derived fields (trust_score, badges, avg_rating, completed_deals,
    cancellation_rate) are written by the transaction lifecycle and by the
    rating signals, never by the user directly.
    """

    UNVERIFIED = 'UNVERIFIED'
    PENDING = 'PENDING'
    VERIFIED = 'VERIFIED'
    REJECTED = 'REJECTED'

    VERIFICATION_STATUS_CHOICES = [
        (UNVERIFIED, 'Unverified'),
        (PENDING, 'Pending'),
        (VERIFIED, 'Verified'),
        (REJECTED, 'Rejected'),
    ]

    email = models.EmailField(
        _('email address'),
        unique=True,
        blank=False,
        null=False,
        error_messages={
            'unique': _('A user with that email already exists.'),
        },
        help_text=_('Required. Used to log in.')
    )

    name = models.CharField(
        _('name'),
        max_length=150,
        blank=True,
        default='',
        help_text=_('Display name')
    )

    college = models.CharField(
        _('college'),
        max_length=200,
        blank=True,
        default='',
        help_text=_('Educational institution name')
    )

    verification_status = models.CharField(
        _('verification status'),
        max_length=20,
        choices=VERIFICATION_STATUS_CHOICES,
        default=UNVERIFIED,
        help_text=_('Student ID verification state')
    )

    student_id_photo = models.URLField(
        _('student ID photo'),
        max_length=500,
        blank=True,
        default='',
        help_text=_('URL of the submitted student ID photo')
    )

    email_verified = models.BooleanField(
        _('email verified'),
        default=False,
        help_text=_('Whether the email one-time password was confirmed')
    )

    email_verification_otp = models.CharField(
        _('email verification OTP'),
        max_length=6,
        blank=True,
        default=''
    )

    otp_expires_at = models.DateTimeField(
        _('OTP expires at'),
        null=True,
        blank=True
    )

    trust_score = models.PositiveSmallIntegerField(
        _('trust score'),
        default=0,
        validators=[MaxValueValidator(100)],
        help_text=_('Derived score from 0 to 100')
    )

    badges = models.JSONField(
        _('badges'),
        default=list,
        blank=True,
        help_text=_('Labels of the badges currently earned')
    )

    avg_rating = models.DecimalField(
        _('average rating'),
        max_digits=3,
        decimal_places=2,
        default=Decimal('0.00'),
        validators=[
            MinValueValidator(Decimal('0.00'), message=_('Rating cannot be negative.')),
            MaxValueValidator(Decimal('5.00'), message=_('Rating cannot exceed 5.00.'))
        ],
        help_text=_('Mean of the star ratings received')
    )

    completed_deals = models.PositiveIntegerField(
        _('completed deals'),
        default=0
    )

    cancellation_rate = models.FloatField(
        _('cancellation rate'),
        default=0.0,
        validators=[MinValueValidator(0.0), MaxValueValidator(1.0)],
        help_text=_('Fraction of deals that ended in a refund')
    )

    last_seen = models.DateTimeField(
        _('last seen'),
        null=True,
        blank=True
    )

    created_at = models.DateTimeField(
        _('created at'),
        auto_now_add=True
    )

    updated_at = models.DateTimeField(
        _('updated at'),
        auto_now=True
    )

    class Meta:
        verbose_name = _('user')
        verbose_name_plural = _('users')
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['email'], name='user_email_idx'),
            models.Index(fields=['verification_status'], name='user_verification_idx'),
            models.Index(fields=['trust_score'], name='user_trust_score_idx'),
        ]

    def __str__(self):
        return self.email or self.username

    @property
    def display_name(self):
        return self.name or self.get_full_name() or self.email

    @property
    def is_student_verified(self):
        return self.verification_status == self.VERIFIED

    def compute_trust(self):
        """
        Evaluate the trust engine against the stored account history.

        Returns:
            tuple: (score, badge labels)
        """
        score, _components = trust.calculate_trust_score(
            self.verification_status,
            self.avg_rating,
            self.completed_deals,
            self.cancellation_rate,
        )
        badges = trust.earned_badges(
            self.completed_deals,
            self.avg_rating,
            self.cancellation_rate,
        )
        return score, badges

    def refresh_trust(self, save=True):
        """
        Recompute trust_score and replace the badge set.

        Args:
            save: Persist the two derived fields immediately
        """
        self.trust_score, self.badges = self.compute_trust()
        if save:
            self.save(update_fields=['trust_score', 'badges', 'updated_at'])

    def clean(self):
        super().clean()
        if self.email:
            self.email = self.email.lower()
        if not self.email:
            raise ValidationError({
                'email': _('Email address is required.')
            })

    def save(self, *args, **kwargs):
        if self.email:
            self.email = self.email.lower()
        if not self.username:
            self.username = self.email
        super().save(*args, **kwargs)


class Item(models.Model):
    """
    A listing offered for sale by a user.

    availability_status follows the item's transactions: RESERVED while an
    active transaction exists, SOLD once one completes.
    """

    AVAILABLE = 'AVAILABLE'
    RESERVED = 'RESERVED'
    SOLD = 'SOLD'

    AVAILABILITY_CHOICES = [
        (AVAILABLE, 'Available'),
        (RESERVED, 'Reserved'),
        (SOLD, 'Sold'),
    ]

    CONDITION_CHOICES = [
        ('NEW', 'New'),
        ('LIKE_NEW', 'Like New'),
        ('GOOD', 'Good'),
        ('FAIR', 'Fair'),
        ('POOR', 'Poor'),
    ]

    seller = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='items',
        help_text=_('User selling the item')
    )

    name = models.CharField(
        _('name'),
        max_length=200,
        help_text=_('Listing title')
    )

    category = models.CharField(
        _('category'),
        max_length=50,
        help_text=_('Free-form category such as electronics or books')
    )

    description = models.TextField(
        _('description'),
        blank=True,
        default=''
    )

    price = models.DecimalField(
        _('price'),
        max_digits=10,
        decimal_places=2,
        validators=[validate_positive_price],
        help_text=_('Asking price in USD')
    )

    condition = models.CharField(
        _('condition'),
        max_length=10,
        choices=CONDITION_CHOICES,
        default='GOOD'
    )

    photo = models.URLField(
        _('photo'),
        max_length=500,
        blank=True,
        default='',
        help_text=_('Primary photo URL')
    )

    photos = models.JSONField(
        _('photos'),
        default=list,
        blank=True,
        validators=[validate_photo_urls],
        help_text=_('Additional photo URLs')
    )

    availability_status = models.CharField(
        _('availability status'),
        max_length=10,
        choices=AVAILABILITY_CHOICES,
        default=AVAILABLE
    )

    ai_price_rating = models.CharField(
        _('price rating'),
        max_length=20,
        blank=True,
        default='',
        help_text=_('Fair, Overpriced, Underpriced or Great Deal')
    )

    avg_campus_price = models.DecimalField(
        _('average campus price'),
        max_digits=10,
        decimal_places=2,
        null=True,
        blank=True
    )

    created_at = models.DateTimeField(
        _('created at'),
        auto_now_add=True
    )

    updated_at = models.DateTimeField(
        _('updated at'),
        auto_now=True
    )

    class Meta:
        verbose_name = _('item')
        verbose_name_plural = _('items')
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['category'], name='item_category_idx'),
            models.Index(fields=['availability_status'], name='item_availability_idx'),
            models.Index(fields=['price'], name='item_price_idx'),
        ]

    def __str__(self):
        return self.name

    def is_available(self):
        return self.availability_status == self.AVAILABLE

    def apply_price_check(self, result):
        """Store a PriceCheckResult on the listing (not saved)."""
        self.ai_price_rating = result.rating
        self.avg_campus_price = Decimal(str(result.average_price))

    def clean(self):
        super().clean()
        if not self.name or not self.name.strip():
            raise ValidationError({
                'name': _('Name cannot be empty.')
            })


class Transaction(models.Model):
    """
    A purchase of one item by one buyer, moving through escrow to completion.

    REQUESTED -> ACCEPTED -> PAID -> MEETING -> COMPLETED, with PAID or
    MEETING -> COMPLETED directly on confirmation, and REFUNDED as the only
    way out of PAID/MEETING other than completion.
    """

    REQUESTED = 'REQUESTED'
    ACCEPTED = 'ACCEPTED'
    PAID = 'PAID'
    MEETING = 'MEETING'
    COMPLETED = 'COMPLETED'
    REFUNDED = 'REFUNDED'

    STATUS_CHOICES = [
        (REQUESTED, 'Requested'),
        (ACCEPTED, 'Accepted'),
        (PAID, 'Paid'),
        (MEETING, 'Meeting'),
        (COMPLETED, 'Completed'),
        (REFUNDED, 'Refunded'),
    ]

    ACTIVE_STATUSES = [REQUESTED, ACCEPTED, PAID, MEETING]

    VALID_TRANSITIONS = {
        REQUESTED: [ACCEPTED],
        ACCEPTED: [PAID],
        PAID: [MEETING, COMPLETED, REFUNDED],
        MEETING: [COMPLETED, REFUNDED],
        COMPLETED: [],  # Terminal state
        REFUNDED: [],  # Terminal state
    }

    # Statuses in which a meetup location may be set without a status change
    MEETUP_EDITABLE_STATUSES = [REQUESTED, ACCEPTED, MEETING]

    DISPUTABLE_STATUSES = [PAID, MEETING]

    buyer = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='purchases',
        help_text=_('User buying the item')
    )

    seller = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='sales',
        help_text=_('User selling the item')
    )

    item = models.ForeignKey(
        Item,
        on_delete=models.CASCADE,
        related_name='transactions'
    )

    status = models.CharField(
        _('status'),
        max_length=10,
        choices=STATUS_CHOICES,
        default=REQUESTED
    )

    escrow_amount = models.DecimalField(
        _('escrow amount'),
        max_digits=10,
        decimal_places=2,
        help_text=_('Item price captured when the purchase was requested')
    )

    meetup_location = models.CharField(
        _('meetup location'),
        max_length=300,
        blank=True,
        default=''
    )

    countdown_start = models.DateTimeField(
        _('countdown start'),
        null=True,
        blank=True
    )

    countdown_end = models.DateTimeField(
        _('countdown end'),
        null=True,
        blank=True,
        help_text=_('Meetup deadline; refunds open once it has passed')
    )

    payment_id = models.CharField(
        _('payment id'),
        max_length=100,
        blank=True,
        default=''
    )

    refund_id = models.CharField(
        _('refund id'),
        max_length=100,
        blank=True,
        default=''
    )

    refund_reason = models.TextField(
        _('refund reason'),
        blank=True,
        default=''
    )

    created_at = models.DateTimeField(
        _('created at'),
        auto_now_add=True
    )

    updated_at = models.DateTimeField(
        _('updated at'),
        auto_now=True
    )

    class Meta:
        verbose_name = _('transaction')
        verbose_name_plural = _('transactions')
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['status'], name='transaction_status_idx'),
        ]
        # MySQL ignores conditional unique constraints (models.W036); there the
        # AVAILABLE -> RESERVED update in lifecycle.request_purchase is the only guard.
        constraints = [
            models.UniqueConstraint(
                fields=['buyer', 'item'],
                name='unique_active_transaction_per_buyer_item',
                condition=models.Q(status__in=['REQUESTED', 'ACCEPTED', 'PAID', 'MEETING'])
            )
        ]

    def __str__(self):
        return f"Transaction {self.pk}: {self.item_id} {self.status}"

    def is_participant(self, user):
        return user.pk in (self.buyer_id, self.seller_id)

    def role_of(self, user):
        """Return 'buyer', 'seller' or None for the given user."""
        if user.pk == self.buyer_id:
            return 'buyer'
        if user.pk == self.seller_id:
            return 'seller'
        return None

    def other_party_id(self, user):
        return self.seller_id if user.pk == self.buyer_id else self.buyer_id

    def refund_available(self, current_time=None):
        """MEETING may always be refunded; PAID only after the countdown ran out."""
        if current_time is None:
            current_time = timezone.now()
        if self.status == self.MEETING:
            return True
        if self.status == self.PAID:
            return self.countdown_end is not None and current_time > self.countdown_end
        return False

    def can_transition_to(self, new_status, current_time=None):
        """
        Validate if the transaction can move to new_status.

        Args:
            new_status: Target status
            current_time: Used for the refund countdown (defaults to timezone.now())

        Returns:
            tuple: (is_valid: bool, error_message: str or None)
        """
        current_status = self.status

        if current_status in (self.COMPLETED, self.REFUNDED):
            return False, f'Transaction is already {current_status.lower()}.'

        if new_status not in self.VALID_TRANSITIONS.get(current_status, []):
            return False, f'Invalid status transition from {current_status} to {new_status}.'

        if new_status == self.REFUNDED and not self.refund_available(current_time):
            return False, 'Refund is only available after the meetup countdown has expired.'

        return True, None

    @staticmethod
    def countdown_window(start, hours):
        return start, start + timedelta(hours=hours)


class Message(models.Model):
    """
    A chat message on a transaction. System messages have no sender.
    """

    transaction = models.ForeignKey(
        Transaction,
        on_delete=models.CASCADE,
        related_name='messages'
    )

    sender = models.ForeignKey(
        User,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='messages_sent'
    )

    content = models.TextField(
        _('content'),
        max_length=2000
    )

    is_ai_generated = models.BooleanField(
        _('AI generated'),
        default=False
    )

    created_at = models.DateTimeField(
        _('created at'),
        auto_now_add=True
    )

    class Meta:
        verbose_name = _('message')
        verbose_name_plural = _('messages')
        ordering = ['created_at', 'id']
        indexes = [
            models.Index(fields=['transaction', 'created_at'], name='message_tx_created_idx'),
        ]

    def __str__(self):
        sender = self.sender.email if self.sender_id else 'system'
        return f"Message from {sender} on transaction {self.transaction_id}"


class Rating(models.Model):
    """
    A star rating given by one user to another after a completed transaction.

    One rating per (rated user, rater) pair, ever.
    """

    user = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='ratings_received',
        help_text=_('User being rated')
    )

    from_user = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='ratings_given',
        help_text=_('User giving the rating')
    )

    transaction = models.ForeignKey(
        Transaction,
        on_delete=models.CASCADE,
        related_name='ratings',
        help_text=_('Completed transaction the rating was given for')
    )

    stars = models.PositiveSmallIntegerField(
        _('stars'),
        validators=[
            MinValueValidator(1, message=_('Rating must be at least 1.')),
            MaxValueValidator(5, message=_('Rating must be at most 5.'))
        ]
    )

    comment = models.CharField(
        _('comment'),
        max_length=500,
        blank=True,
        default=''
    )

    created_at = models.DateTimeField(
        _('created at'),
        auto_now_add=True
    )

    class Meta:
        verbose_name = _('rating')
        verbose_name_plural = _('ratings')
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['from_user'], name='rating_from_user_idx'),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=['user', 'from_user'],
                name='unique_rating_per_rater'
            )
        ]

    def __str__(self):
        return f"{self.stars}★ for {self.user_id} from {self.from_user_id}"

    def clean(self):
        super().clean()
        if self.user_id and self.from_user_id and self.user_id == self.from_user_id:
            raise ValidationError({
                'user': _('You cannot rate yourself.')
            })


class Dispute(models.Model):
    """
    A complaint about a paid transaction, arbitrated by the text classifier.

    decision stays PENDING unless the classifier was confident enough to
    auto-resolve.
    """

    PENDING = 'PENDING'
    BUYER_FAVOR = 'BUYER_FAVOR'
    SELLER_FAVOR = 'SELLER_FAVOR'
    SPLIT = 'SPLIT'
    DISMISSED = 'DISMISSED'

    DECISION_CHOICES = [
        (PENDING, 'Pending'),
        (BUYER_FAVOR, 'Buyer favor'),
        (SELLER_FAVOR, 'Seller favor'),
        (SPLIT, 'Split'),
        (DISMISSED, 'Dismissed'),
    ]

    # Classifier outcomes that may be persisted as a final decision
    RESOLVABLE_DECISIONS = [BUYER_FAVOR, SELLER_FAVOR, SPLIT]

    transaction = models.OneToOneField(
        Transaction,
        on_delete=models.CASCADE,
        related_name='dispute'
    )

    raised_by = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='disputes_raised'
    )

    evidence_text = models.TextField(
        _('evidence'),
        help_text=_('Description of the problem')
    )

    photos = models.JSONField(
        _('photos'),
        default=list,
        blank=True,
        validators=[validate_photo_urls]
    )

    decision = models.CharField(
        _('decision'),
        max_length=15,
        choices=DECISION_CHOICES,
        default=PENDING
    )

    confidence = models.PositiveSmallIntegerField(
        _('confidence'),
        default=0,
        validators=[MaxValueValidator(100)]
    )

    ai_summary = models.TextField(
        _('summary'),
        blank=True,
        default='',
        help_text=_('Reasoning behind the suggested decision')
    )

    suggested_action = models.CharField(
        _('suggested action'),
        max_length=300,
        blank=True,
        default=''
    )

    created_at = models.DateTimeField(
        _('created at'),
        auto_now_add=True
    )

    resolved_at = models.DateTimeField(
        _('resolved at'),
        null=True,
        blank=True
    )

    class Meta:
        verbose_name = _('dispute')
        verbose_name_plural = _('disputes')
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['decision'], name='dispute_decision_idx'),
        ]

    def __str__(self):
        return f"Dispute on transaction {self.transaction_id} ({self.decision})"

    def apply_resolution(self, resolution, threshold):
        """
        Record a classifier resolution; finalize it only above the threshold.

        Returns:
            bool: True when a final decision was stored
        """
        self.confidence = resolution.confidence
        self.ai_summary = resolution.reasoning
        self.suggested_action = resolution.suggested_action
        if resolution.confidence > threshold:
            if resolution.decision in self.RESOLVABLE_DECISIONS:
                self.decision = resolution.decision
            else:
                self.decision = self.PENDING
            self.resolved_at = timezone.now()
            return self.decision != self.PENDING
        return False
