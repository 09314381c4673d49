"""
Django admin configuration for the marketplace models.
"""

from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin
from django.utils.translation import gettext_lazy as _

from .models import Dispute, Item, Message, Rating, Transaction, User


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    """
    Admin interface for marketplace accounts.

    Trust fields are derived, so they are shown read-only.
    """

    list_display = [
        'email',
        'name',
        'college',
        'verification_status',
        'email_verified',
        'trust_score',
        'completed_deals',
        'is_active',
        'created_at',
    ]

    list_filter = [
        'verification_status',
        'email_verified',
        'is_staff',
        'is_active',
        'created_at',
    ]

    search_fields = [
        'email',
        'name',
        'college',
    ]

    ordering = ['-created_at']

    fieldsets = (
        (None, {
            'fields': ('email', 'username', 'password')
        }),
        (_('Profile'), {
            'fields': ('name', 'college', 'last_seen')
        }),
        (_('Verification'), {
            'fields': (
                'email_verified',
                'verification_status',
                'student_id_photo',
            )
        }),
        (_('Trust'), {
            'fields': (
                'trust_score',
                'badges',
                'avg_rating',
                'completed_deals',
                'cancellation_rate',
            )
        }),
        (_('Permissions'), {
            'fields': (
                'is_active',
                'is_staff',
                'is_superuser',
                'groups',
                'user_permissions',
            ),
            'classes': ('collapse',),
        }),
        (_('Important Dates'), {
            'fields': ('last_login', 'date_joined', 'created_at', 'updated_at'),
            'classes': ('collapse',),
        }),
    )

    add_fieldsets = (
        (None, {
            'classes': ('wide',),
            'fields': (
                'email',
                'username',
                'name',
                'college',
                'password1',
                'password2',
            ),
        }),
    )

    readonly_fields = [
        'trust_score',
        'badges',
        'avg_rating',
        'completed_deals',
        'cancellation_rate',
        'created_at',
        'updated_at',
        'last_login',
        'date_joined',
    ]

    date_hierarchy = 'created_at'

    list_per_page = 25

    def get_readonly_fields(self, request, obj=None):
        if obj:
            return self.readonly_fields
        return []


@admin.register(Item)
class ItemAdmin(admin.ModelAdmin):
    """Admin interface for Item model."""

    list_display = [
        'name',
        'seller',
        'category',
        'price',
        'condition',
        'availability_status',
        'ai_price_rating',
        'created_at',
    ]

    list_filter = [
        'availability_status',
        'condition',
        'category',
        'created_at',
    ]

    search_fields = [
        'name',
        'description',
        'seller__email',
    ]

    readonly_fields = ['ai_price_rating', 'avg_campus_price', 'created_at', 'updated_at']

    ordering = ['-created_at']

    date_hierarchy = 'created_at'

    list_per_page = 25

    fieldsets = (
        (None, {
            'fields': ('seller', 'name', 'category', 'description')
        }),
        (_('Pricing & Condition'), {
            'fields': ('price', 'condition', 'ai_price_rating', 'avg_campus_price')
        }),
        (_('Photos & Availability'), {
            'fields': ('photo', 'photos', 'availability_status')
        }),
        (_('Timestamps'), {
            'fields': ('created_at', 'updated_at'),
            'classes': ('collapse',),
        }),
    )


class MessageInline(admin.TabularInline):
    """Inline admin for transaction chat."""
    model = Message
    extra = 0
    fields = ['sender', 'content', 'is_ai_generated', 'created_at']
    readonly_fields = ['created_at']
    ordering = ['created_at']


@admin.register(Transaction)
class TransactionAdmin(admin.ModelAdmin):
    """Admin interface for Transaction model."""

    list_display = [
        'id',
        'buyer',
        'seller',
        'item',
        'status',
        'escrow_amount',
        'countdown_end',
        'created_at',
    ]

    list_filter = [
        'status',
        'created_at',
    ]

    search_fields = [
        'buyer__email',
        'seller__email',
        'item__name',
        'payment_id',
    ]

    readonly_fields = ['created_at', 'updated_at']

    ordering = ['-created_at']

    date_hierarchy = 'created_at'

    list_per_page = 25

    inlines = [MessageInline]

    fieldsets = (
        (None, {
            'fields': ('buyer', 'seller', 'item')
        }),
        (_('Escrow'), {
            'fields': ('status', 'escrow_amount', 'payment_id', 'refund_id', 'refund_reason')
        }),
        (_('Meetup'), {
            'fields': ('meetup_location', 'countdown_start', 'countdown_end')
        }),
        (_('Timestamps'), {
            'fields': ('created_at', 'updated_at'),
            'classes': ('collapse',),
        }),
    )


@admin.register(Rating)
class RatingAdmin(admin.ModelAdmin):
    """Admin interface for Rating model."""

    list_display = [
        'id',
        'from_user',
        'user',
        'transaction',
        'stars',
        'created_at',
    ]

    list_filter = [
        'stars',
        'created_at',
    ]

    search_fields = [
        'from_user__email',
        'user__email',
        'comment',
    ]

    readonly_fields = ['created_at']

    ordering = ['-created_at']

    date_hierarchy = 'created_at'

    list_per_page = 25


@admin.register(Dispute)
class DisputeAdmin(admin.ModelAdmin):
    """Admin interface for Dispute model."""

    list_display = [
        'id',
        'transaction',
        'raised_by',
        'decision',
        'confidence',
        'created_at',
        'resolved_at',
    ]

    list_filter = [
        'decision',
        'created_at',
    ]

    search_fields = [
        'raised_by__email',
        'evidence_text',
    ]

    readonly_fields = ['confidence', 'ai_summary', 'suggested_action', 'created_at']

    ordering = ['-created_at']

    date_hierarchy = 'created_at'

    list_per_page = 25
