"""
Serializers for the QuickGrab REST API.
"""

from django.contrib.auth import get_user_model
from django.contrib.auth.password_validation import validate_password
from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import transaction as db_transaction
from rest_framework import serializers
from rest_framework.exceptions import NotFound, PermissionDenied

from . import trust
from .exceptions import StateConflict
from .models import Dispute, Item, Message, Rating, Transaction
from .validators import MAX_PHOTOS, validate_evidence_text

User = get_user_model()


# ============================================================================
# Users and authentication
# ============================================================================

class UserRegistrationSerializer(serializers.ModelSerializer):
    """
    Serializer for account registration.

    Fields:
    - name: Required display name
    - email: Required, unique (case-insensitive)
    - password: Required, at least 8 characters
    - college: Optional
    """

    password = serializers.CharField(
        write_only=True,
        required=True,
        min_length=8,
        style={'input_type': 'password'}
    )

    class Meta:
        model = User
        fields = ['id', 'name', 'email', 'password', 'college', 'verification_status',
                  'email_verified', 'trust_score', 'created_at']
        read_only_fields = ['id', 'verification_status', 'email_verified', 'trust_score', 'created_at']
        extra_kwargs = {
            'name': {'required': True, 'allow_blank': False},
            'email': {'required': True, 'validators': []},
        }

    def validate_email(self, value):
        value = value.strip().lower()
        if User.objects.filter(email__iexact=value).exists():
            raise StateConflict('A user with that email already exists.')
        return value

    def validate_password(self, value):
        try:
            validate_password(value)
        except DjangoValidationError as e:
            raise serializers.ValidationError(list(e.messages))
        return value

    def create(self, validated_data):
        password = validated_data.pop('password')
        with db_transaction.atomic():
            user = User(
                username=validated_data['email'],
                **validated_data
            )
            user.set_password(password)
            user.refresh_trust(save=False)
            user.save()
        return user


class LoginSerializer(serializers.Serializer):
    email = serializers.EmailField(required=True)
    password = serializers.CharField(
        required=True,
        write_only=True,
        style={'input_type': 'password'}
    )


class VerifyEmailSerializer(serializers.Serializer):
    email = serializers.EmailField(required=True)
    otp = serializers.RegexField(
        r'^\d{6}$',
        required=True,
        error_messages={'invalid': 'OTP must be 6 digits.'}
    )


class VerifyIdSerializer(serializers.Serializer):
    id_photo_url = serializers.URLField(required=True, max_length=500)


class UserSummarySerializer(serializers.ModelSerializer):
    """Compact public view of a user, embedded in items, messages and ratings."""

    class Meta:
        model = User
        fields = ['id', 'name', 'college', 'verification_status', 'trust_score',
                  'avg_rating', 'badges']
        read_only_fields = fields


class UserPublicSerializer(serializers.ModelSerializer):
    """
    Public profile with trust level, received ratings and available items.
    """

    trust_level = serializers.SerializerMethodField()
    ratings_received = serializers.SerializerMethodField()
    items = serializers.SerializerMethodField()

    class Meta:
        model = User
        fields = ['id', 'name', 'college', 'verification_status', 'trust_score',
                  'trust_level', 'badges', 'avg_rating', 'completed_deals',
                  'cancellation_rate', 'last_seen', 'created_at',
                  'ratings_received', 'items']
        read_only_fields = fields

    def get_trust_level(self, obj):
        return trust.trust_level(obj.trust_score)

    def get_ratings_received(self, obj):
        ratings = obj.ratings_received.select_related('from_user').order_by('-created_at', '-id')
        return RatingSerializer(ratings, many=True).data

    def get_items(self, obj):
        items = obj.items.filter(availability_status=Item.AVAILABLE).order_by('-created_at', '-id')
        return ItemSummarySerializer(items, many=True).data


class UserProfileSerializer(UserPublicSerializer):
    """The caller's own profile; adds private account fields."""

    class Meta(UserPublicSerializer.Meta):
        fields = UserPublicSerializer.Meta.fields + ['email', 'email_verified', 'student_id_photo']
        read_only_fields = fields


# ============================================================================
# Items
# ============================================================================

class ItemSummarySerializer(serializers.ModelSerializer):
    class Meta:
        model = Item
        fields = ['id', 'name', 'price', 'photo', 'condition', 'availability_status']
        read_only_fields = fields


class ItemSerializer(serializers.ModelSerializer):
    """Read serializer for listings."""

    seller = UserSummarySerializer(read_only=True)

    class Meta:
        model = Item
        fields = ['id', 'seller', 'name', 'category', 'description', 'price', 'condition',
                  'photo', 'photos', 'availability_status', 'ai_price_rating',
                  'avg_campus_price', 'created_at', 'updated_at']
        read_only_fields = fields


class ItemWriteSerializer(serializers.ModelSerializer):
    """
    Create / partial update serializer for listings.

    Price analysis fields and availability are never client-writable.
    """

    photos = serializers.ListField(
        child=serializers.URLField(max_length=500),
        required=False,
        max_length=MAX_PHOTOS
    )

    class Meta:
        model = Item
        fields = ['name', 'category', 'description', 'price', 'condition', 'photo', 'photos']
        extra_kwargs = {
            'name': {'required': True, 'allow_blank': False},
            'category': {'required': True, 'allow_blank': False},
            'price': {'required': True},
        }

    def validate_name(self, value):
        if not value.strip():
            raise serializers.ValidationError('Name cannot be empty.')
        return value.strip()

    def validate_category(self, value):
        return value.strip().lower()

    def validate_price(self, value):
        if value <= 0:
            raise serializers.ValidationError('Price must be greater than 0.')
        return value


class SearchSerializer(serializers.Serializer):
    SORT_CHOICES = ['price_asc', 'price_desc', 'rating', 'newest']

    query = serializers.CharField(required=True, max_length=200)
    category = serializers.CharField(required=False, allow_blank=True, max_length=50)
    min_price = serializers.DecimalField(required=False, max_digits=10, decimal_places=2, min_value=0)
    max_price = serializers.DecimalField(required=False, max_digits=10, decimal_places=2, min_value=0)
    condition = serializers.ChoiceField(choices=Item.CONDITION_CHOICES, required=False)
    sort = serializers.ChoiceField(choices=SORT_CHOICES, required=False, default='newest')
    page = serializers.IntegerField(required=False, default=1, min_value=1)
    limit = serializers.IntegerField(required=False, default=20, min_value=1, max_value=50)

    def validate(self, attrs):
        min_price = attrs.get('min_price')
        max_price = attrs.get('max_price')
        if min_price is not None and max_price is not None and min_price > max_price:
            raise serializers.ValidationError({
                'max_price': 'max_price must be greater than or equal to min_price.'
            })
        return attrs


# ============================================================================
# Transactions and messages
# ============================================================================

class TransactionSerializer(serializers.ModelSerializer):
    buyer = UserSummarySerializer(read_only=True)
    seller = UserSummarySerializer(read_only=True)
    item = ItemSummarySerializer(read_only=True)

    class Meta:
        model = Transaction
        fields = ['id', 'buyer', 'seller', 'item', 'status', 'escrow_amount',
                  'meetup_location', 'countdown_start', 'countdown_end',
                  'payment_id', 'refund_id', 'refund_reason', 'created_at', 'updated_at']
        read_only_fields = fields


class PurchaseRequestSerializer(serializers.Serializer):
    item_id = serializers.IntegerField(required=True, min_value=1)


class TransactionActionSerializer(serializers.Serializer):
    transaction_id = serializers.IntegerField(required=True, min_value=1)


class PaymentSerializer(TransactionActionSerializer):
    payment_id = serializers.CharField(required=False, allow_blank=True, max_length=100)


class RefundSerializer(TransactionActionSerializer):
    reason = serializers.CharField(required=False, allow_blank=True, max_length=1000)


class MeetupSerializer(serializers.Serializer):
    location = serializers.CharField(required=True, max_length=300)

    def validate_location(self, value):
        if not value.strip():
            raise serializers.ValidationError('Location cannot be empty.')
        return value.strip()


class MessageSerializer(serializers.ModelSerializer):
    sender = UserSummarySerializer(read_only=True)

    class Meta:
        model = Message
        fields = ['id', 'transaction', 'sender', 'content', 'is_ai_generated', 'created_at']
        read_only_fields = fields


class MessageCreateSerializer(serializers.Serializer):
    content = serializers.CharField(required=True, max_length=2000)

    def validate_content(self, value):
        if not value.strip():
            raise serializers.ValidationError('Message cannot be empty.')
        return value.strip()


# ============================================================================
# Disputes
# ============================================================================

class DisputeCreateSerializer(serializers.Serializer):
    transaction_id = serializers.IntegerField(required=True, min_value=1)
    evidence_text = serializers.CharField(
        required=True,
        max_length=5000,
        validators=[validate_evidence_text]
    )
    photos = serializers.ListField(
        child=serializers.URLField(max_length=500),
        required=False,
        default=list,
        max_length=MAX_PHOTOS
    )


class DisputeSerializer(serializers.ModelSerializer):
    raised_by = UserSummarySerializer(read_only=True)
    transaction = TransactionSerializer(read_only=True)

    class Meta:
        model = Dispute
        fields = ['id', 'transaction', 'raised_by', 'evidence_text', 'photos', 'decision',
                  'confidence', 'ai_summary', 'suggested_action', 'created_at', 'resolved_at']
        read_only_fields = fields


# ============================================================================
# Ratings
# ============================================================================

class RatingSerializer(serializers.ModelSerializer):
    from_user = UserSummarySerializer(read_only=True)

    class Meta:
        model = Rating
        fields = ['id', 'user', 'from_user', 'transaction', 'stars', 'comment', 'created_at']
        read_only_fields = fields


class RatingCreateSerializer(serializers.ModelSerializer):
    """
    Serializer for rating the counterparty of a completed transaction.

    - transaction_id: Required, the completed transaction
    - user_id: Optional; when given it must be the other party
    - stars: 1 to 5
    - comment: Optional, at most 500 characters

    The rated user is always the other participant of the transaction.
    """

    transaction_id = serializers.IntegerField(write_only=True, required=True)
    user_id = serializers.IntegerField(write_only=True, required=False)
    stars = serializers.IntegerField(min_value=1, max_value=5)
    from_user = UserSummarySerializer(read_only=True)

    class Meta:
        model = Rating
        fields = ['id', 'transaction_id', 'user_id', 'user', 'from_user', 'transaction',
                  'stars', 'comment', 'created_at']
        read_only_fields = ['id', 'user', 'from_user', 'transaction', 'created_at']
        extra_kwargs = {
            'comment': {'required': False, 'allow_blank': True, 'max_length': 500},
        }

    def validate(self, attrs):
        """
        Checks, in order: transaction exists (404), caller took part (403),
        transaction is COMPLETED (409), target is the counterparty (400),
        caller has not rated that user before (409).
        """
        user = self.context['request'].user

        tx = Transaction.objects.filter(pk=attrs['transaction_id']).first()
        if tx is None:
            raise NotFound('Transaction not found')

        if not tx.is_participant(user):
            raise PermissionDenied('You are not part of this transaction')

        if tx.status != Transaction.COMPLETED:
            raise StateConflict(
                'Can only rate after transaction is completed',
                details={'status': tx.status},
            )

        target_id = tx.other_party_id(user)
        if attrs.get('user_id') is not None and attrs['user_id'] != target_id:
            raise serializers.ValidationError({'user_id': 'Invalid rating target.'})

        if Rating.objects.filter(user_id=target_id, from_user=user).exists():
            raise StateConflict('You have already rated this user')

        attrs['transaction'] = tx
        attrs['user_id'] = target_id
        attrs['from_user'] = user
        return attrs

    def create(self, validated_data):
        validated_data.pop('transaction_id', None)
        return Rating.objects.create(**validated_data)
