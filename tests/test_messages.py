"""
Tests for transaction chat and meetup suggestions.
"""

from datetime import timedelta

import pytest
from django.urls import reverse
from django.utils import timezone
from rest_framework import status

from marketplace import views
from marketplace.ai.classifiers import HeuristicClassifier
from marketplace.ai.moderation import BLOCK, ModerationResult
from marketplace.models import Message, Transaction


class BlockingClassifier(HeuristicClassifier):
    def moderate(self, content):
        return ModerationResult(is_safe=False, flags=['threat'], severity='high', action=BLOCK)


@pytest.fixture
def tx(make_transaction):
    return make_transaction(status=Transaction.ACCEPTED)


def messages_url(tx):
    return reverse('transaction_messages', args=[tx.id])


@pytest.mark.django_db
class TestPostMessage:

    def test_clean_message(self, buyer_client, buyer, tx):
        response = buyer_client.post(messages_url(tx), {'content': 'Can we meet at 3pm?'}, format='json')

        assert response.status_code == status.HTTP_201_CREATED
        assert response.data['message']['content'] == 'Can we meet at 3pm?'
        assert response.data['message']['sender']['id'] == buyer.id
        assert response.data['message']['is_ai_generated'] is False
        assert response.data['moderation'] == {
            'is_safe': True, 'flags': [], 'severity': 'none', 'action': 'allow',
        }

    def test_flagged_message_is_stored_with_warning(self, seller_client, tx):
        response = seller_client.post(
            messages_url(tx), {'content': 'Please send money via gift card'}, format='json'
        )

        assert response.status_code == status.HTTP_201_CREATED
        moderation = response.data['moderation']
        assert moderation['is_safe'] is False
        assert moderation['action'] == 'review'
        assert Message.objects.filter(transaction=tx).count() == 1

    def test_blocked_message_is_rejected(self, buyer_client, tx, monkeypatch):
        monkeypatch.setattr(views, 'get_classifier', BlockingClassifier)

        response = buyer_client.post(messages_url(tx), {'content': 'something nasty'}, format='json')

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data['error'] == 'Message blocked by moderation'
        assert response.data['details']['action'] == 'block'
        assert not Message.objects.exists()

    def test_empty_message(self, buyer_client, tx):
        response = buyer_client.post(messages_url(tx), {'content': '   '}, format='json')
        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_messages_allowed_after_completion(self, buyer_client, make_transaction):
        done = make_transaction(status=Transaction.COMPLETED)
        response = buyer_client.post(messages_url(done), {'content': 'Thanks!'}, format='json')
        assert response.status_code == status.HTTP_201_CREATED

    def test_outsider_cannot_post(self, outsider_client, tx):
        response = outsider_client.post(messages_url(tx), {'content': 'Hi'}, format='json')
        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_unknown_transaction(self, buyer_client):
        response = buyer_client.post(
            reverse('transaction_messages', args=[9999]), {'content': 'Hi'}, format='json'
        )
        assert response.status_code == status.HTTP_404_NOT_FOUND


@pytest.mark.django_db
class TestReadMessages:

    def test_messages_in_order(self, seller_client, buyer, seller, tx):
        Message.objects.create(transaction=tx, sender=buyer, content='First')
        Message.objects.create(transaction=tx, sender=seller, content='Second')

        response = seller_client.get(messages_url(tx))

        assert response.status_code == status.HTTP_200_OK
        assert [message['content'] for message in response.data['messages']] == ['First', 'Second']
        assert response.data['server_time']

    def test_since_returns_only_newer(self, buyer_client, buyer, seller, tx):
        old = Message.objects.create(transaction=tx, sender=buyer, content='Old')
        Message.objects.filter(pk=old.pk).update(created_at=timezone.now() - timedelta(minutes=10))
        Message.objects.create(transaction=tx, sender=seller, content='New')
        since = (timezone.now() - timedelta(minutes=5)).isoformat()

        response = buyer_client.get(messages_url(tx), {'since': since})

        assert [message['content'] for message in response.data['messages']] == ['New']

    def test_invalid_since(self, buyer_client, tx):
        response = buyer_client.get(messages_url(tx), {'since': 'yesterday'})
        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_outsider_cannot_read(self, outsider_client, tx):
        response = outsider_client.get(messages_url(tx))
        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_anonymous_cannot_read(self, api_client, tx):
        response = api_client.get(messages_url(tx))
        assert response.status_code == status.HTTP_401_UNAUTHORIZED


@pytest.mark.django_db
class TestMeetupSuggestions:

    def test_participant_gets_suggestions(self, buyer_client, tx):
        response = buyer_client.get(reverse('transaction_meetup_suggestions', args=[tx.id]))

        assert response.status_code == status.HTTP_200_OK
        suggestions = response.data['suggestions']
        assert [spot['name'] for spot in suggestions['locations']] == [
            'Main Library Entrance', 'Student Union Building', 'Campus Coffee Shop',
        ]
        assert suggestions['suggested_time']
        assert suggestions['safety_tips']

    def test_outsider_gets_403(self, outsider_client, tx):
        response = outsider_client.get(reverse('transaction_meetup_suggestions', args=[tx.id]))
        assert response.status_code == status.HTTP_403_FORBIDDEN
