"""
Tests for natural-language search over listings.
"""

import pytest
from django.urls import reverse
from rest_framework import status

from marketplace.models import Item


def search(client, query, **params):
    return client.post(reverse('search'), {'query': query, **params}, format='json')


def names(response):
    return [item['name'] for item in response.data['items']]


@pytest.fixture
def listings(seller, create_item):
    return {
        'charger': create_item(seller, name='Laptop Charger', price='30.00'),
        'stand': create_item(seller, name='Laptop Stand', price='25.00'),
        'phone': create_item(seller, name='Phone Charger', price='10.00'),
        'fridge': create_item(
            seller, name='Mini Fridge', price='60.00', category='appliances',
            description='Perfect for a dorm room'
        ),
        'lamp': create_item(seller, name='Desk Lamp', price='15.00', category='furniture'),
    }


@pytest.mark.django_db
class TestSearch:

    def test_every_keyword_must_match(self, api_client, listings):
        response = search(api_client, 'laptop charger')

        assert response.status_code == status.HTTP_200_OK
        assert names(response) == ['Laptop Charger']

    def test_parsed_max_price_filters(self, api_client, listings):
        response = search(api_client, 'charger under $20')

        assert names(response) == ['Phone Charger']
        parsed = response.data['query']['parsed']
        assert parsed['price_range'] == {'max': 20}
        assert parsed['category'] == 'electronics'
        assert response.data['query']['original'] == 'charger under $20'

    def test_explicit_max_price_overrides_parsed(self, api_client, listings):
        response = search(api_client, 'charger under $20', max_price='50')
        assert sorted(names(response)) == ['Laptop Charger', 'Phone Charger']

    def test_urgency_is_reported(self, api_client, listings):
        response = search(api_client, 'need a lamp asap')
        assert response.data['query']['parsed']['urgency'] == 'high'
        assert names(response) == ['Desk Lamp']

    def test_keywords_match_description(self, api_client, listings):
        response = search(api_client, 'dorm')
        assert names(response) == ['Mini Fridge']

    def test_explicit_category(self, api_client, listings):
        response = search(api_client, 'lamp', category='electronics')
        assert names(response) == []

    def test_reserved_items_are_excluded(self, api_client, listings):
        Item.objects.filter(pk=listings['phone'].pk).update(availability_status=Item.RESERVED)
        response = search(api_client, 'charger')
        assert names(response) == ['Laptop Charger']

    def test_sort_by_price(self, api_client, listings):
        ascending = search(api_client, 'charger', sort='price_asc')
        descending = search(api_client, 'charger', sort='price_desc')

        assert names(ascending) == ['Phone Charger', 'Laptop Charger']
        assert names(descending) == ['Laptop Charger', 'Phone Charger']

    def test_results_carry_price_rating(self, api_client, listings):
        item = search(api_client, 'laptop charger').data['items'][0]

        assert item['ai_price_rating'] == 'Fair'
        assert item['avg_campus_price'] == 30
        assert item['price_explanation']

    def test_min_price_filter(self, api_client, listings):
        response = search(api_client, 'laptop', min_price='26')
        assert names(response) == ['Laptop Charger']

    def test_pagination(self, api_client, listings):
        response = search(api_client, 'charger', sort='price_asc', limit=1, page=2)
        assert names(response) == ['Laptop Charger']
        assert response.data['pagination']['total'] == 2
        assert response.data['pagination']['total_pages'] == 2

    def test_query_required(self, api_client):
        response = api_client.post(reverse('search'), {}, format='json')
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert 'query' in response.data['details']

    def test_min_price_above_max_price(self, api_client):
        response = search(api_client, 'lamp', min_price='50', max_price='10')
        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_unknown_sort(self, api_client):
        response = search(api_client, 'lamp', sort='cheapest')
        assert response.status_code == status.HTTP_400_BAD_REQUEST
