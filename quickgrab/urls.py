"""
URL configuration for the quickgrab project.

All API routes live under /api/.
"""
from django.contrib import admin
from django.urls import path
from rest_framework_simplejwt.views import TokenBlacklistView

from marketplace.views import (
    CurrentUserView,
    DisputeListCreateView,
    ItemDetailView,
    ItemListCreateView,
    LoginView,
    MeetupSuggestionsView,
    MessageListCreateView,
    RatingListCreateView,
    RegisterView,
    SearchView,
    ThrottledTokenRefreshView,
    TransactionAcceptView,
    TransactionConfirmView,
    TransactionDetailView,
    TransactionListView,
    TransactionMeetupView,
    TransactionPayView,
    TransactionRefundView,
    TransactionRequestView,
    UserDetailView,
    VerifyEmailView,
    VerifyIdView,
)


urlpatterns = [
    path('admin/', admin.site.urls),

    # Authentication endpoints
    path('api/auth/register', RegisterView.as_view(), name='auth_register'),
    path('api/auth/login', LoginView.as_view(), name='auth_login'),
    path('api/auth/logout', TokenBlacklistView.as_view(), name='auth_logout'),
    path('api/auth/token/refresh', ThrottledTokenRefreshView.as_view(), name='token_refresh'),
    path('api/auth/verify-email', VerifyEmailView.as_view(), name='auth_verify_email'),
    path('api/auth/verify-id', VerifyIdView.as_view(), name='auth_verify_id'),

    # User endpoints
    path('api/users/me', CurrentUserView.as_view(), name='user_me'),
    path('api/users/<int:pk>', UserDetailView.as_view(), name='user_detail'),

    # Item endpoints
    path('api/items', ItemListCreateView.as_view(), name='item_list'),
    path('api/items/<int:pk>', ItemDetailView.as_view(), name='item_detail'),
    path('api/search', SearchView.as_view(), name='search'),

    # Transaction endpoints
    path('api/transactions', TransactionListView.as_view(), name='transaction_list'),
    path('api/transactions/request', TransactionRequestView.as_view(), name='transaction_request'),
    path('api/transactions/accept', TransactionAcceptView.as_view(), name='transaction_accept'),
    path('api/transactions/pay', TransactionPayView.as_view(), name='transaction_pay'),
    path('api/transactions/confirm', TransactionConfirmView.as_view(), name='transaction_confirm'),
    path('api/transactions/refund', TransactionRefundView.as_view(), name='transaction_refund'),
    path('api/transactions/<int:pk>', TransactionDetailView.as_view(), name='transaction_detail'),
    path('api/transactions/<int:pk>/meetup', TransactionMeetupView.as_view(), name='transaction_meetup'),
    path(
        'api/transactions/<int:pk>/meetup-suggestions',
        MeetupSuggestionsView.as_view(),
        name='transaction_meetup_suggestions'
    ),
    path('api/transactions/<int:pk>/messages', MessageListCreateView.as_view(), name='transaction_messages'),

    # Dispute and rating endpoints
    path('api/disputes', DisputeListCreateView.as_view(), name='dispute_list'),
    path('api/ratings', RatingListCreateView.as_view(), name='rating_list'),
]
