"""
Custom permission classes for the QuickGrab API.
"""

from rest_framework import permissions


class IsItemOwnerOrReadOnly(permissions.BasePermission):
    """
    Anyone may read a listing; only its seller may change or delete it.

    Usage:
        class ItemDetailView(APIView):
            permission_classes = [IsItemOwnerOrReadOnly]
    """

    message = 'Only the seller can modify this item.'

    def has_permission(self, request, view):
        if request.method in permissions.SAFE_METHODS:
            return True
        return bool(request.user and request.user.is_authenticated)

    def has_object_permission(self, request, view, obj):
        if request.method in permissions.SAFE_METHODS:
            return True
        return obj.seller_id == request.user.id


class IsTransactionParticipant(permissions.BasePermission):
    """
    Object-level permission for transactions: buyer or seller only.

    Accepts either a Transaction or any object with a `transaction` attribute
    (messages, disputes).
    """

    message = 'You are not part of this transaction'

    def has_permission(self, request, view):
        return bool(request.user and request.user.is_authenticated)

    def has_object_permission(self, request, view, obj):
        transaction = getattr(obj, 'transaction', obj)
        return request.user.id in (transaction.buyer_id, transaction.seller_id)
