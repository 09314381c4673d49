"""
Tests for login, token refresh and logout.

Covers:
- Successful login returns an access token, a refresh token and the profile
- Identical 401 for unknown email and wrong password
- Login refused until the email is verified
- Rate limiting on login and refresh
- Refresh token rotation and blacklisting on logout
"""

import pytest
from django.contrib.auth import get_user_model
from django.urls import reverse
from rest_framework import status
from rest_framework_simplejwt.token_blacklist.models import BlacklistedToken

User = get_user_model()

PASSWORD = 'SecurePass123!'


def login(api_client, email, password=PASSWORD):
    return api_client.post(
        reverse('auth_login'), {'email': email, 'password': password}, format='json'
    )


@pytest.mark.django_db
class TestLogin:

    def test_successful_login(self, api_client, buyer):
        response = login(api_client, 'buyer@stateu.edu')

        assert response.status_code == status.HTTP_200_OK
        assert 'token' in response.data
        assert 'refresh' in response.data
        assert response.data['user']['id'] == buyer.id
        assert response.data['user']['email'] == 'buyer@stateu.edu'

        buyer.refresh_from_db()
        assert buyer.last_seen is not None

    def test_token_grants_access(self, api_client, buyer):
        token = login(api_client, 'buyer@stateu.edu').data['token']
        api_client.credentials(HTTP_AUTHORIZATION=f'Bearer {token}')

        response = api_client.get(reverse('user_me'))
        assert response.status_code == status.HTTP_200_OK
        assert response.data['user']['id'] == buyer.id

    def test_email_is_case_insensitive(self, api_client, buyer):
        assert login(api_client, 'BUYER@StateU.edu').status_code == status.HTTP_200_OK

    def test_wrong_password_and_unknown_email_look_the_same(self, api_client, buyer):
        wrong_password = login(api_client, 'buyer@stateu.edu', 'WrongPass123!')
        unknown_email = login(api_client, 'nobody@stateu.edu')

        assert wrong_password.status_code == status.HTTP_401_UNAUTHORIZED
        assert unknown_email.status_code == status.HTTP_401_UNAUTHORIZED
        assert wrong_password.data == unknown_email.data == {'error': 'Invalid credentials'}

    def test_unverified_email_cannot_log_in(self, api_client, create_user):
        create_user('new@stateu.edu', email_verified=False)
        response = login(api_client, 'new@stateu.edu')
        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert 'verify your email' in response.data['error']

    def test_inactive_user_cannot_log_in(self, api_client, create_user):
        create_user('gone@stateu.edu', is_active=False)
        assert login(api_client, 'gone@stateu.edu').status_code == status.HTTP_401_UNAUTHORIZED

    def test_missing_fields(self, api_client):
        response = api_client.post(reverse('auth_login'), {}, format='json')
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert set(response.data['details']) == {'email', 'password'}

    def test_login_is_rate_limited(self, api_client, buyer):
        for _ in range(5):
            login(api_client, 'buyer@stateu.edu', 'WrongPass123!')

        response = login(api_client, 'buyer@stateu.edu')
        assert response.status_code == status.HTTP_429_TOO_MANY_REQUESTS
        assert 'error' in response.data


@pytest.mark.django_db
class TestTokenRefresh:

    def test_refresh_rotates_tokens(self, api_client, buyer):
        refresh = login(api_client, 'buyer@stateu.edu').data['refresh']

        response = api_client.post(reverse('token_refresh'), {'refresh': refresh}, format='json')
        assert response.status_code == status.HTTP_200_OK
        assert 'access' in response.data
        assert response.data['refresh'] != refresh

    def test_rotated_refresh_token_cannot_be_reused(self, api_client, buyer):
        refresh = login(api_client, 'buyer@stateu.edu').data['refresh']
        api_client.post(reverse('token_refresh'), {'refresh': refresh}, format='json')

        response = api_client.post(reverse('token_refresh'), {'refresh': refresh}, format='json')
        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    def test_garbage_token(self, api_client):
        response = api_client.post(reverse('token_refresh'), {'refresh': 'not-a-token'}, format='json')
        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    def test_refresh_is_rate_limited(self, api_client):
        for _ in range(10):
            api_client.post(reverse('token_refresh'), {'refresh': 'not-a-token'}, format='json')

        response = api_client.post(reverse('token_refresh'), {'refresh': 'not-a-token'}, format='json')
        assert response.status_code == status.HTTP_429_TOO_MANY_REQUESTS


@pytest.mark.django_db
class TestLogout:

    def test_logout_blacklists_refresh_token(self, api_client, buyer):
        refresh = login(api_client, 'buyer@stateu.edu').data['refresh']

        response = api_client.post(reverse('auth_logout'), {'refresh': refresh}, format='json')
        assert response.status_code == status.HTTP_200_OK
        assert BlacklistedToken.objects.count() == 1

        response = api_client.post(reverse('token_refresh'), {'refresh': refresh}, format='json')
        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    def test_logout_twice(self, api_client, buyer):
        refresh = login(api_client, 'buyer@stateu.edu').data['refresh']
        api_client.post(reverse('auth_logout'), {'refresh': refresh}, format='json')

        response = api_client.post(reverse('auth_logout'), {'refresh': refresh}, format='json')
        assert response.status_code == status.HTTP_401_UNAUTHORIZED


@pytest.mark.django_db
class TestAuthenticationRequired:

    @pytest.mark.parametrize('url_name', ['user_me', 'transaction_list', 'dispute_list'])
    def test_anonymous_requests_rejected(self, api_client, url_name):
        response = api_client.get(reverse(url_name))
        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        assert 'error' in response.data

    def test_invalid_bearer_token(self, api_client):
        api_client.credentials(HTTP_AUTHORIZATION='Bearer nonsense')
        response = api_client.get(reverse('user_me'))
        assert response.status_code == status.HTTP_401_UNAUTHORIZED
