"""
API views for the QuickGrab marketplace.
"""

import logging

from django.conf import settings
from django.contrib.auth import get_user_model
from django.core.paginator import Paginator
from django.db import IntegrityError
from django.db import transaction as db_transaction
from django.db.models import Q
from django.shortcuts import get_object_or_404
from django.utils import timezone
from django.utils.dateparse import parse_datetime
from rest_framework import generics, status
from rest_framework.exceptions import NotFound, ValidationError
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.throttling import ScopedRateThrottle
from rest_framework.views import APIView
from rest_framework_simplejwt.tokens import RefreshToken
from rest_framework_simplejwt.views import TokenRefreshView

from . import lifecycle
from .ai import verification
from .ai.classifiers import get_classifier
from .ai.moderation import detect_scam
from .exceptions import ContentBlocked, StateConflict, error_response
from .models import Dispute, Item, Message, Rating, Transaction
from .permissions import IsItemOwnerOrReadOnly, IsTransactionParticipant
from .serializers import (
    DisputeCreateSerializer,
    DisputeSerializer,
    ItemSerializer,
    ItemWriteSerializer,
    LoginSerializer,
    MeetupSerializer,
    MessageCreateSerializer,
    MessageSerializer,
    PaymentSerializer,
    PurchaseRequestSerializer,
    RatingCreateSerializer,
    RatingSerializer,
    RefundSerializer,
    SearchSerializer,
    TransactionActionSerializer,
    TransactionSerializer,
    UserProfileSerializer,
    UserPublicSerializer,
    UserRegistrationSerializer,
    VerifyEmailSerializer,
    VerifyIdSerializer,
)

logger = logging.getLogger(__name__)

User = get_user_model()

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 50


def get_client_ip(request):
    """
    Get client IP address from request.
    Handles proxy headers for accurate IP detection.
    """
    x_forwarded_for = request.META.get('HTTP_X_FORWARDED_FOR')
    if x_forwarded_for:
        return x_forwarded_for.split(',')[0].strip()
    return request.META.get('REMOTE_ADDR')


def int_query_param(request, name, default, min_value=1, max_value=None):
    """Parse a positive integer query parameter, raising a 400 on bad input."""
    raw = request.query_params.get(name)
    if raw in (None, ''):
        return default
    try:
        value = int(raw)
    except (TypeError, ValueError):
        raise ValidationError(f'Invalid value for "{name}". Must be an integer.')
    if value < min_value or (max_value is not None and value > max_value):
        bounds = f'between {min_value} and {max_value}' if max_value else f'at least {min_value}'
        raise ValidationError(f'"{name}" must be {bounds}.')
    return value


def paginate(queryset, page, limit):
    """
    Slice a queryset into one page.

    Pages past the end are empty rather than an error.

    Returns:
        tuple: (objects on the page, pagination dict)
    """
    paginator = Paginator(queryset, limit)
    objects = paginator.page(page).object_list if page <= paginator.num_pages else []
    return objects, {
        'page': page,
        'limit': limit,
        'total': paginator.count,
        'total_pages': paginator.num_pages if paginator.count else 0,
    }


def touch_last_seen(user):
    User.objects.filter(pk=user.pk).update(last_seen=timezone.now())


# ============================================================================
# Authentication
# ============================================================================

class RegisterView(generics.CreateAPIView):
    """
    Create an account and issue an email verification code.

    POST /api/auth/register
    Request body: {"name": "...", "email": "...", "password": "...", "college": "..."}

    The 6-digit code is valid for OTP_TTL_MINUTES. It is logged for delivery
    and echoed in the response only when DEBUG is on.

    Error responses:
    - 400: Validation failed
    - 409: Email already registered
    """
    serializer_class = UserRegistrationSerializer
    permission_classes = [AllowAny]
    authentication_classes = []

    def create(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            user = serializer.save()
        except IntegrityError:
            # Concurrent registration with the same email
            raise StateConflict('A user with that email already exists.')

        otp = verification.generate_otp()
        user.email_verification_otp = otp
        user.otp_expires_at = verification.otp_expiry(settings.QUICKGRAB['OTP_TTL_MINUTES'])
        user.save(update_fields=['email_verification_otp', 'otp_expires_at'])

        logger.info(f"Registered user {user.pk} ({user.email}); email verification code {otp}")

        data = {
            'message': 'Registration successful. Check your email for the verification code.',
            'user': serializer.data,
        }
        if settings.DEBUG:
            data['otp'] = otp
        return Response(data, status=status.HTTP_201_CREATED)


class LoginView(APIView):
    """
    Exchange email and password for JWT tokens.

    POST /api/auth/login
    Request body: {"email": "user@college.edu", "password": "..."}

    Success response (200):
    {
        "token": "<access token, 7 days>",
        "refresh": "<refresh token>",
        "user": {...}
    }

    Error responses:
    - 401: Invalid credentials (same message for unknown email and wrong password)
    - 403: Email address not verified yet
    - 429: Too many attempts
    """
    permission_classes = [AllowAny]
    authentication_classes = []
    throttle_classes = [ScopedRateThrottle]
    throttle_scope = 'login'

    def post(self, request, *args, **kwargs):
        serializer = LoginSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        email = serializer.validated_data['email'].lower().strip()
        password = serializer.validated_data['password']
        client_ip = get_client_ip(request)

        user = User.objects.filter(email__iexact=email).first()
        if user is None or not user.check_password(password) or not user.is_active:
            logger.warning(f"Failed login attempt. Email: {email}, IP: {client_ip}")
            return error_response('Invalid credentials', status.HTTP_401_UNAUTHORIZED)

        if not user.email_verified:
            logger.warning(f"Login attempt with unverified email. Email: {email}, IP: {client_ip}")
            return error_response(
                'Please verify your email before logging in',
                status.HTTP_403_FORBIDDEN
            )

        refresh = RefreshToken.for_user(user)
        touch_last_seen(user)
        logger.info(f"Successful login. Email: {email}, IP: {client_ip}")

        return Response({
            'token': str(refresh.access_token),
            'refresh': str(refresh),
            'user': UserProfileSerializer(user).data,
        }, status=status.HTTP_200_OK)


class ThrottledTokenRefreshView(TokenRefreshView):
    """simplejwt refresh with rotation, rate limited per client."""
    throttle_classes = [ScopedRateThrottle]
    throttle_scope = 'refresh'


class VerifyEmailView(APIView):
    """
    Confirm an email address with the code issued at registration.

    POST /api/auth/verify-email
    Request body: {"email": "...", "otp": "123456"}

    Error responses:
    - 400: Wrong or expired code
    - 404: Unknown email
    - 409: Already verified
    """
    permission_classes = [AllowAny]
    authentication_classes = []

    def post(self, request, *args, **kwargs):
        serializer = VerifyEmailSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        email = serializer.validated_data['email'].lower().strip()
        user = User.objects.filter(email__iexact=email).first()
        if user is None:
            raise NotFound('User not found')

        if user.email_verified:
            raise StateConflict('Email already verified')

        if user.email_verification_otp != serializer.validated_data['otp']:
            logger.warning(f"Invalid email verification code for user {user.pk}")
            raise ValidationError('Invalid OTP')

        if verification.is_otp_expired(user.otp_expires_at):
            raise ValidationError('OTP has expired')

        user.email_verified = True
        user.email_verification_otp = ''
        user.otp_expires_at = None
        user.save(update_fields=['email_verified', 'email_verification_otp', 'otp_expires_at', 'updated_at'])

        logger.info(f"Email verified for user {user.pk}")
        return Response({'message': 'Email verified successfully'}, status=status.HTTP_200_OK)


class VerifyIdView(APIView):
    """
    Submit a student ID photo for verification.

    POST /api/auth/verify-id
    Request body: {"id_photo_url": "https://..."}

    The account goes to PENDING, then to VERIFIED or REJECTED depending on
    the classifier's verdict. The college is filled from a passing verdict when the
    profile has none, and the trust score is recomputed.

    Error responses:
    - 400: Missing or invalid URL
    - 409: Already verified
    """
    permission_classes = [IsAuthenticated]

    def post(self, request, *args, **kwargs):
        serializer = VerifyIdSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        id_photo_url = serializer.validated_data['id_photo_url']

        user = request.user
        if user.verification_status == User.VERIFIED:
            raise StateConflict('User is already verified')

        user.student_id_photo = id_photo_url
        user.verification_status = User.PENDING
        user.save(update_fields=['student_id_photo', 'verification_status', 'updated_at'])

        result = get_classifier().verify_student(user.email, user.display_name, id_photo_url)

        with db_transaction.atomic():
            user.verification_status = User.VERIFIED if result.is_valid else User.REJECTED
            if result.is_valid and result.college and not user.college:
                user.college = result.college
            user.refresh_trust(save=False)
            user.save(update_fields=[
                'verification_status', 'college', 'trust_score', 'badges', 'updated_at'
            ])

        logger.info(
            f"Student ID verification for user {user.pk}: {user.verification_status} "
            f"(confidence {result.confidence})"
        )
        return Response({
            'verification_status': user.verification_status,
            'result': result.as_dict(),
            'user': UserProfileSerializer(user).data,
        }, status=status.HTTP_200_OK)


# ============================================================================
# Users
# ============================================================================

class CurrentUserView(APIView):
    """GET /api/users/me"""
    permission_classes = [IsAuthenticated]

    def get(self, request, *args, **kwargs):
        touch_last_seen(request.user)
        return Response({'user': UserProfileSerializer(request.user).data})


class UserDetailView(APIView):
    """
    Public profile.

    GET /api/users/<id>

    Includes trust level, ratings received (newest first) and the user's
    currently available items.
    """
    permission_classes = [AllowAny]

    def get(self, request, pk, *args, **kwargs):
        user = User.objects.filter(pk=pk, is_active=True).first()
        if user is None:
            raise NotFound('User not found')
        return Response({'user': UserPublicSerializer(user).data})


# ============================================================================
# Items
# ============================================================================

class ItemListCreateView(APIView):
    """
    Browse available listings or create a new one.

    GET /api/items?page=1&limit=20&category=books&seller_id=3
        Public. Only AVAILABLE items, newest first. limit is capped at 50.

    POST /api/items
        Authenticated. The price is checked on creation and the rating and
        campus average are stored on the listing.
    """

    def get_permissions(self):
        if self.request.method == 'POST':
            return [IsAuthenticated()]
        return [AllowAny()]

    def get(self, request, *args, **kwargs):
        page = int_query_param(request, 'page', 1)
        limit = int_query_param(request, 'limit', DEFAULT_PAGE_SIZE, max_value=MAX_PAGE_SIZE)

        queryset = (
            Item.objects
            .select_related('seller')
            .filter(availability_status=Item.AVAILABLE)
            .order_by('-created_at', '-id')
        )

        category = request.query_params.get('category')
        if category:
            queryset = queryset.filter(category__iexact=category.strip())

        seller_id = request.query_params.get('seller_id')
        if seller_id:
            queryset = queryset.filter(seller_id=int_query_param(request, 'seller_id', None))

        items, pagination = paginate(queryset, page, limit)
        return Response({
            'items': ItemSerializer(items, many=True).data,
            'pagination': pagination,
        })

    def post(self, request, *args, **kwargs):
        serializer = ItemWriteSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        item = Item(seller=request.user, **serializer.validated_data)
        price_check = get_classifier().check_price(item.name, item.price, item.condition)
        item.apply_price_check(price_check)
        item.save()

        logger.info(
            f"Item {item.pk} listed by user {request.user.pk} at {item.price} "
            f"({price_check.rating})"
        )
        return Response({
            'item': ItemSerializer(item).data,
            'price_analysis': price_check.as_dict(),
        }, status=status.HTTP_201_CREATED)


class ItemDetailView(APIView):
    """
    GET    /api/items/<id>   Public; includes a fresh price analysis.
    PUT    /api/items/<id>   Seller only; partial update, price re-checked.
    DELETE /api/items/<id>   Seller only; refused while the item is reserved or sold.
    """
    permission_classes = [IsItemOwnerOrReadOnly]

    def get_object(self, pk):
        item = Item.objects.select_related('seller').filter(pk=pk).first()
        if item is None:
            raise NotFound('Item not found')
        self.check_object_permissions(self.request, item)
        return item

    def get(self, request, pk, *args, **kwargs):
        item = self.get_object(pk)
        price_check = get_classifier().check_price(item.name, item.price, item.condition)
        return Response({
            'item': ItemSerializer(item).data,
            'price_analysis': price_check.as_dict(),
        })

    def put(self, request, pk, *args, **kwargs):
        item = self.get_object(pk)
        serializer = ItemWriteSerializer(item, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)

        for field, value in serializer.validated_data.items():
            setattr(item, field, value)

        price_check = None
        if {'name', 'price', 'condition'} & set(serializer.validated_data):
            price_check = get_classifier().check_price(item.name, item.price, item.condition)
            item.apply_price_check(price_check)
        item.save()

        logger.info(f"Item {item.pk} updated by user {request.user.pk}")
        data = {'item': ItemSerializer(item).data}
        if price_check is not None:
            data['price_analysis'] = price_check.as_dict()
        return Response(data)

    def delete(self, request, pk, *args, **kwargs):
        item = self.get_object(pk)

        deleted, _ = Item.objects.filter(pk=item.pk, availability_status=Item.AVAILABLE).delete()
        if not deleted:
            raise StateConflict(
                'Cannot delete an item with a pending or completed sale',
                details={'availability_status': item.availability_status},
            )

        logger.info(f"Item {pk} deleted by user {request.user.pk}")
        return Response({'message': 'Item deleted successfully'}, status=status.HTTP_200_OK)


class SearchView(APIView):
    """
    Natural-language search over available listings.

    POST /api/search
    Request body:
    {
        "query": "need a laptop charger under $20 asap",
        "category": "electronics",        (optional, overrides parsed category)
        "min_price": 5, "max_price": 30,  (optional; max_price overrides parsed max)
        "condition": "GOOD",              (optional)
        "sort": "price_asc" | "price_desc" | "rating" | "newest",
        "page": 1, "limit": 20
    }

    Every keyword of the parsed query must appear in the item's name or
    description. Each result carries a price rating.
    """
    permission_classes = [AllowAny]

    SORT_ORDER = {
        'price_asc': ['price', '-created_at', '-id'],
        'price_desc': ['-price', '-created_at', '-id'],
        'rating': ['-seller__avg_rating', '-created_at', '-id'],
        'newest': ['-created_at', '-id'],
    }

    def post(self, request, *args, **kwargs):
        serializer = SearchSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        params = serializer.validated_data

        classifier = get_classifier()
        parsed = classifier.parse_search(params['query'])

        queryset = Item.objects.select_related('seller').filter(availability_status=Item.AVAILABLE)

        for keyword in parsed.keywords:
            queryset = queryset.filter(
                Q(name__icontains=keyword) | Q(description__icontains=keyword)
            )

        category = params.get('category') or parsed.category
        if category:
            queryset = queryset.filter(category__icontains=category)

        min_price = params.get('min_price', parsed.min_price)
        if min_price is not None:
            queryset = queryset.filter(price__gte=min_price)

        max_price = params.get('max_price', parsed.max_price)
        if max_price is not None:
            queryset = queryset.filter(price__lte=max_price)

        if params.get('condition'):
            queryset = queryset.filter(condition=params['condition'])

        queryset = queryset.order_by(*self.SORT_ORDER[params['sort']])
        items, pagination = paginate(queryset, params['page'], params['limit'])

        results = []
        for item in items:
            data = ItemSerializer(item).data
            price_check = classifier.check_price(item.name, item.price, item.condition)
            data['ai_price_rating'] = price_check.rating
            data['avg_campus_price'] = price_check.average_price
            data['price_explanation'] = price_check.explanation
            results.append(data)

        return Response({
            'query': {
                'original': params['query'],
                'parsed': parsed.as_dict(),
            },
            'items': results,
            'pagination': pagination,
        })


# ============================================================================
# Transactions
# ============================================================================

class TransactionListView(APIView):
    """
    GET /api/transactions?role=buyer|seller&status=PAID

    The caller's transactions, newest first.
    """
    permission_classes = [IsAuthenticated]

    def get(self, request, *args, **kwargs):
        user = request.user
        role = request.query_params.get('role')
        if role == 'buyer':
            queryset = Transaction.objects.filter(buyer=user)
        elif role == 'seller':
            queryset = Transaction.objects.filter(seller=user)
        elif role in (None, ''):
            queryset = Transaction.objects.filter(Q(buyer=user) | Q(seller=user))
        else:
            raise ValidationError('Invalid value for "role". Must be "buyer" or "seller".')

        tx_status = request.query_params.get('status')
        if tx_status:
            tx_status = tx_status.upper()
            if tx_status not in dict(Transaction.STATUS_CHOICES):
                raise ValidationError(f'Invalid value for "status": {tx_status}')
            queryset = queryset.filter(status=tx_status)

        page = int_query_param(request, 'page', 1)
        limit = int_query_param(request, 'limit', DEFAULT_PAGE_SIZE, max_value=MAX_PAGE_SIZE)
        queryset = queryset.select_related('buyer', 'seller', 'item').order_by('-created_at', '-id')
        transactions, pagination = paginate(queryset, page, limit)

        return Response({
            'transactions': TransactionSerializer(transactions, many=True).data,
            'pagination': pagination,
        })


class TransactionDetailView(APIView):
    """
    GET /api/transactions/<id>

    Participants only. Includes the chat history, the caller's role and a
    scam-risk assessment of the deal.
    """
    permission_classes = [IsTransactionParticipant]

    def get(self, request, pk, *args, **kwargs):
        tx = get_object_or_404(
            Transaction.objects.select_related('buyer', 'seller', 'item'), pk=pk
        )
        self.check_object_permissions(request, tx)

        messages = tx.messages.select_related('sender').order_by('created_at', 'id')
        seller = tx.seller
        risk = detect_scam(
            cancellation_rate=seller.cancellation_rate,
            completed_deals=seller.completed_deals,
            avg_rating=seller.avg_rating,
            price=tx.escrow_amount,
            market_price=tx.item.avg_campus_price,
            message_count=len(messages),
        )

        data = TransactionSerializer(tx).data
        data['role'] = tx.role_of(request.user)
        data['messages'] = MessageSerializer(messages, many=True).data
        data['risk_assessment'] = risk.as_dict()
        return Response({'transaction': data})


class TransactionRequestView(APIView):
    """
    POST /api/transactions/request   {"item_id": 12}

    Opens a REQUESTED transaction and reserves the item.

    Error responses:
    - 400: Own item
    - 404: Unknown item
    - 409: Item not available, or an active request already exists
    """
    permission_classes = [IsAuthenticated]

    def post(self, request, *args, **kwargs):
        serializer = PurchaseRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        tx = lifecycle.request_purchase(request.user, serializer.validated_data['item_id'])
        return Response({
            'message': 'Purchase request sent',
            'transaction': TransactionSerializer(tx).data,
        }, status=status.HTTP_201_CREATED)


class TransactionAcceptView(APIView):
    """POST /api/transactions/accept   {"transaction_id": 7}   Seller only."""
    permission_classes = [IsAuthenticated]

    def post(self, request, *args, **kwargs):
        serializer = TransactionActionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        tx = lifecycle.accept(
            serializer.validated_data['transaction_id'], request.user, get_classifier()
        )
        return Response({
            'message': 'Request accepted',
            'transaction': TransactionSerializer(tx).data,
        })


class TransactionPayView(APIView):
    """
    POST /api/transactions/pay   {"transaction_id": 7, "payment_id": "..."}

    Buyer only. Starts the 24 hour meetup countdown.
    """
    permission_classes = [IsAuthenticated]

    def post(self, request, *args, **kwargs):
        serializer = PaymentSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        tx = lifecycle.pay(
            serializer.validated_data['transaction_id'],
            request.user,
            payment_id=serializer.validated_data.get('payment_id'),
        )
        return Response({
            'message': 'Payment held in escrow',
            'transaction': TransactionSerializer(tx).data,
        })


class TransactionConfirmView(APIView):
    """POST /api/transactions/confirm   {"transaction_id": 7}   Buyer only."""
    permission_classes = [IsAuthenticated]

    def post(self, request, *args, **kwargs):
        serializer = TransactionActionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        tx = lifecycle.confirm_receipt(serializer.validated_data['transaction_id'], request.user)
        return Response({
            'message': 'Transaction completed',
            'transaction': TransactionSerializer(tx).data,
        })


class TransactionRefundView(APIView):
    """
    POST /api/transactions/refund   {"transaction_id": 7, "reason": "..."}

    Buyer only; from MEETING, or from PAID once the countdown has expired.
    Otherwise 409 "Refund not available".
    """
    permission_classes = [IsAuthenticated]

    def post(self, request, *args, **kwargs):
        serializer = RefundSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        tx = lifecycle.refund(
            serializer.validated_data['transaction_id'],
            request.user,
            reason=serializer.validated_data.get('reason', ''),
        )
        return Response({
            'message': 'Refund processed',
            'transaction': TransactionSerializer(tx).data,
        })


class TransactionMeetupView(APIView):
    """POST /api/transactions/<id>/meetup   {"location": "Main Library Entrance"}"""
    permission_classes = [IsAuthenticated]

    def post(self, request, pk, *args, **kwargs):
        serializer = MeetupSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        tx = lifecycle.arrange_meetup(pk, request.user, serializer.validated_data['location'])
        return Response({
            'message': 'Meetup location saved',
            'transaction': TransactionSerializer(tx).data,
        })


class MeetupSuggestionsView(APIView):
    """GET /api/transactions/<id>/meetup-suggestions   Participants only."""
    permission_classes = [IsAuthenticated]

    def get(self, request, pk, *args, **kwargs):
        tx = lifecycle.get_participant_transaction(pk, request.user)
        suggestion = get_classifier().suggest_meetup(tx.item.name)
        return Response({'suggestions': suggestion.as_dict()})


class MessageListCreateView(APIView):
    """
    Polling chat for a transaction.

    GET  /api/transactions/<id>/messages?since=<ISO 8601 timestamp>
        Messages in order, only those newer than `since` when given.

    POST /api/transactions/<id>/messages   {"content": "..."}
        Content is moderated first; a message the moderator blocks is
        rejected with 400 and the moderation flags as details.
    """
    permission_classes = [IsAuthenticated]

    def get(self, request, pk, *args, **kwargs):
        tx = lifecycle.get_participant_transaction(pk, request.user)
        queryset = tx.messages.select_related('sender').order_by('created_at', 'id')

        since = request.query_params.get('since')
        if since:
            since_dt = parse_datetime(since.replace(' ', '+'))
            if since_dt is None:
                raise ValidationError('Invalid value for "since". Must be an ISO 8601 timestamp.')
            if timezone.is_naive(since_dt):
                since_dt = timezone.make_aware(since_dt)
            queryset = queryset.filter(created_at__gt=since_dt)

        touch_last_seen(request.user)
        return Response({
            'messages': MessageSerializer(queryset, many=True).data,
            'server_time': timezone.now().isoformat(),
        })

    def post(self, request, pk, *args, **kwargs):
        tx = lifecycle.get_participant_transaction(pk, request.user)
        serializer = MessageCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        content = serializer.validated_data['content']

        moderation = get_classifier().moderate(content)
        if moderation.blocked:
            logger.warning(
                f"Blocked message from user {request.user.pk} on transaction {tx.pk}: "
                f"{moderation.flags}"
            )
            raise ContentBlocked(details=moderation.as_dict())

        message = Message.objects.create(transaction=tx, sender=request.user, content=content)
        touch_last_seen(request.user)

        if not moderation.is_safe:
            logger.warning(
                f"Flagged message {message.pk} on transaction {tx.pk}: {moderation.flags}"
            )

        return Response({
            'message': MessageSerializer(message).data,
            'moderation': moderation.as_dict(),
        }, status=status.HTTP_201_CREATED)


# ============================================================================
# Disputes
# ============================================================================

class DisputeListCreateView(APIView):
    """
    POST /api/disputes
        {"transaction_id": 7, "evidence_text": "...", "photos": ["https://..."]}
        Participants of a PAID or MEETING transaction; one dispute per transaction.

    GET /api/disputes?transaction_id=7&status=PENDING
        Disputes on the caller's transactions.
    """
    permission_classes = [IsAuthenticated]

    def get(self, request, *args, **kwargs):
        user = request.user
        queryset = (
            Dispute.objects
            .select_related('raised_by', 'transaction__buyer', 'transaction__seller', 'transaction__item')
            .filter(Q(transaction__buyer=user) | Q(transaction__seller=user))
            .order_by('-created_at', '-id')
        )

        transaction_id = request.query_params.get('transaction_id')
        if transaction_id:
            queryset = queryset.filter(transaction_id=int_query_param(request, 'transaction_id', None))

        decision = request.query_params.get('status')
        if decision:
            decision = decision.upper()
            if decision not in dict(Dispute.DECISION_CHOICES):
                raise ValidationError(f'Invalid value for "status": {decision}')
            queryset = queryset.filter(decision=decision)

        return Response({'disputes': DisputeSerializer(queryset, many=True).data})

    def post(self, request, *args, **kwargs):
        serializer = DisputeCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        dispute = lifecycle.raise_dispute(
            serializer.validated_data['transaction_id'],
            request.user,
            serializer.validated_data['evidence_text'],
            serializer.validated_data['photos'],
            get_classifier(),
        )
        return Response({
            'message': 'Dispute submitted',
            'dispute': DisputeSerializer(dispute).data,
        }, status=status.HTTP_201_CREATED)


# ============================================================================
# Ratings
# ============================================================================

class RatingListCreateView(APIView):
    """
    POST /api/ratings
        {"transaction_id": 7, "stars": 5, "comment": "..."}
        Rates the other party of a completed transaction; once per rated user.

    GET /api/ratings?user_id=3&page=1&limit=20
        Public. Ratings received by a user with average, total and star
        distribution.
    """

    def get_permissions(self):
        if self.request.method == 'POST':
            return [IsAuthenticated()]
        return [AllowAny()]

    def get(self, request, *args, **kwargs):
        if not request.query_params.get('user_id'):
            raise ValidationError('user_id is required')
        user_id = int_query_param(request, 'user_id', None)
        if not User.objects.filter(pk=user_id).exists():
            raise NotFound('User not found')

        page = int_query_param(request, 'page', 1)
        limit = int_query_param(request, 'limit', DEFAULT_PAGE_SIZE, max_value=MAX_PAGE_SIZE)

        all_ratings = Rating.objects.filter(user_id=user_id)
        stars = list(all_ratings.values_list('stars', flat=True))
        stats = {
            'average': round(sum(stars) / len(stars), 2) if stars else 0,
            'total': len(stars),
            'distribution': {str(n): stars.count(n) for n in range(5, 0, -1)},
        }

        queryset = all_ratings.select_related('from_user').order_by('-created_at', '-id')
        ratings, pagination = paginate(queryset, page, limit)

        return Response({
            'ratings': RatingSerializer(ratings, many=True).data,
            'stats': stats,
            'pagination': pagination,
        })

    def post(self, request, *args, **kwargs):
        serializer = RatingCreateSerializer(data=request.data, context={'request': request})
        serializer.is_valid(raise_exception=True)

        try:
            with db_transaction.atomic():
                rating = serializer.save()
        except IntegrityError:
            raise StateConflict('You have already rated this user')

        logger.info(
            f"User {request.user.pk} rated user {rating.user_id} {rating.stars} stars "
            f"for transaction {rating.transaction_id}"
        )
        return Response({
            'message': 'Rating submitted successfully',
            'rating': RatingSerializer(rating).data,
        }, status=status.HTTP_201_CREATED)
