"""
Text classifier backends.

Every marketplace decision that may be delegated to a language model goes
through a TextClassifier. HeuristicClassifier answers from fixed rules;
RemoteClassifier asks the Anthropic messages API and falls back to the
heuristic answer whenever the call fails or the reply cannot be used.
"""

import json
import logging

import httpx
from django.conf import settings
from django.utils import timezone

from marketplace.ai import disputes, meetup, moderation, pricing, search, verification


logger = logging.getLogger(__name__)

ANTHROPIC_VERSION = '2023-06-01'
MAX_TOKENS = 1024


class TextClassifier:
    """Interface shared by every classifier backend."""

    def check_price(self, item_name, price, condition='GOOD'):
        raise NotImplementedError

    def parse_search(self, query):
        raise NotImplementedError

    def resolve_dispute(self, transaction_id, evidence):
        raise NotImplementedError

    def moderate(self, content):
        raise NotImplementedError

    def verify_student(self, email, name, id_photo_url=None):
        raise NotImplementedError

    def suggest_meetup(self, item_name=None):
        raise NotImplementedError


class HeuristicClassifier(TextClassifier):
    """Deterministic rule-based answers; needs no network access."""

    def check_price(self, item_name, price, condition='GOOD'):
        return pricing.check_price(item_name, price, condition)

    def parse_search(self, query):
        return search.parse_query(query)

    def resolve_dispute(self, transaction_id, evidence):
        return disputes.resolve_dispute(evidence)

    def moderate(self, content):
        return moderation.moderate(content)

    def verify_student(self, email, name, id_photo_url=None):
        return verification.verify_student(email, name, id_photo_url)

    def suggest_meetup(self, item_name=None):
        return meetup.suggest_meetup(hour=timezone.localtime().hour)


class RemoteClassifier(TextClassifier):
    """
    Classifier backed by the Anthropic messages API.

    One attempt per call, no retries. Transport errors, non-2xx responses and
    replies that are not the expected JSON all degrade to the heuristic result.
    """

    def __init__(self, api_key, api_url, model, timeout=10.0, fallback=None):
        self.api_key = api_key
        self.api_url = api_url
        self.model = model
        self.timeout = timeout
        self.fallback = fallback or HeuristicClassifier()

    def complete(self, system_prompt, prompt):
        """Send one prompt and return the text of the first content block."""
        response = httpx.post(
            self.api_url,
            headers={
                'Content-Type': 'application/json',
                'x-api-key': self.api_key,
                'anthropic-version': ANTHROPIC_VERSION,
            },
            json={
                'model': self.model,
                'max_tokens': MAX_TOKENS,
                'system': system_prompt,
                'messages': [{'role': 'user', 'content': prompt}],
            },
            timeout=self.timeout,
        )
        response.raise_for_status()
        return response.json()['content'][0]['text']

    def _ask(self, operation, system_prompt, prompt, build, fallback):
        try:
            payload = json.loads(self.complete(system_prompt, prompt))
            return build(payload)
        except (httpx.HTTPError, ValueError, KeyError, IndexError, TypeError, AttributeError) as e:
            logger.warning(f"Remote classifier {operation} failed, using heuristic: {e}")
            return fallback()

    def check_price(self, item_name, price, condition='GOOD'):
        return self._ask(
            'price check',
            pricing.SYSTEM_PROMPT,
            pricing.user_prompt(item_name, price, condition),
            lambda payload: pricing.from_payload(payload, price),
            lambda: self.fallback.check_price(item_name, price, condition),
        )

    def parse_search(self, query):
        return self._ask(
            'search parse',
            search.SYSTEM_PROMPT,
            search.user_prompt(query),
            lambda payload: search.from_payload(payload, query),
            lambda: self.fallback.parse_search(query),
        )

    def resolve_dispute(self, transaction_id, evidence):
        return self._ask(
            'dispute resolution',
            disputes.SYSTEM_PROMPT,
            disputes.user_prompt(transaction_id, evidence),
            disputes.from_payload,
            lambda: self.fallback.resolve_dispute(transaction_id, evidence),
        )

    def moderate(self, content):
        return self._ask(
            'moderation',
            moderation.SYSTEM_PROMPT,
            moderation.user_prompt(content),
            moderation.from_payload,
            lambda: self.fallback.moderate(content),
        )

    def verify_student(self, email, name, id_photo_url=None):
        return self._ask(
            'student verification',
            verification.SYSTEM_PROMPT,
            verification.user_prompt(email, name, id_photo_url),
            lambda payload: verification.from_payload(payload, email),
            lambda: self.fallback.verify_student(email, name, id_photo_url),
        )

    def suggest_meetup(self, item_name=None):
        return self._ask(
            'meetup suggestion',
            meetup.SYSTEM_PROMPT,
            meetup.user_prompt(item_name),
            meetup.from_payload,
            lambda: self.fallback.suggest_meetup(item_name),
        )


def get_classifier():
    """
    Build the classifier selected by QUICKGRAB['TEXT_CLASSIFIER'].

    'remote' without an API key falls back to the heuristic backend.
    """
    config = settings.QUICKGRAB
    if config.get('TEXT_CLASSIFIER') == 'remote':
        api_key = config.get('ANTHROPIC_API_KEY')
        if api_key:
            return RemoteClassifier(
                api_key=api_key,
                api_url=config['ANTHROPIC_API_URL'],
                model=config['ANTHROPIC_MODEL'],
                timeout=config.get('AI_TIMEOUT_SECONDS', 10.0),
            )
        logger.warning("Remote classifier requested without ANTHROPIC_API_KEY, using heuristic")
    return HeuristicClassifier()
