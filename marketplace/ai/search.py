"""
Natural-language search query parsing.
"""

import re
from dataclasses import dataclass, field


URGENCY_LEVELS = ['low', 'medium', 'high']
URGENT_WORDS = ['urgent', 'asap', 'now']

# Keyword -> category, first match wins
CATEGORY_KEYWORDS = {
    'phone': 'electronics',
    'laptop': 'electronics',
    'charger': 'electronics',
    'cable': 'electronics',
    'book': 'books',
    'textbook': 'books',
    'desk': 'furniture',
    'chair': 'furniture',
    'shirt': 'clothing',
    'jacket': 'clothing',
}

MAX_PRICE_PATTERN = re.compile(r'under\s*\$?(\d+)|below\s*\$?(\d+)|max\s*\$?(\d+)')
FILLER_PATTERN = re.compile(r'urgent|asap|need|want|looking for|under \$?\d+', re.IGNORECASE)

SYSTEM_PROMPT = """You are a search query parser for QuickGrab, a student marketplace.
Parse the user's search query and extract:
1. The main item being searched for
2. Urgency level (low, medium, high) - look for words like "urgent", "asap", "need now"
3. Category if mentioned (electronics, books, furniture, clothing, etc.)
4. Price range if mentioned
5. Condition preference if mentioned (new, used, like new)
6. Key search terms

Return only JSON with these fields:
- item: string (the main item)
- urgency: "low" | "medium" | "high"
- category: string | null
- priceRange: { min?: number, max?: number } | null
- condition: string | null
- keywords: string[]"""


@dataclass(frozen=True)
class ParsedQuery:
    item: str
    urgency: str = 'medium'
    category: str = None
    min_price: float = None
    max_price: float = None
    condition: str = None
    keywords: list = field(default_factory=list)

    def as_dict(self):
        price_range = None
        if self.min_price is not None or self.max_price is not None:
            price_range = {}
            if self.min_price is not None:
                price_range['min'] = self.min_price
            if self.max_price is not None:
                price_range['max'] = self.max_price
        return {
            'item': self.item,
            'urgency': self.urgency,
            'category': self.category,
            'price_range': price_range,
            'condition': self.condition,
            'keywords': list(self.keywords),
        }


def parse_query(query):
    """
    Extract urgency, category, max price and keywords from a free-text query.

    Example:
        >>> parse_query('need a laptop charger under $20 asap').max_price
        20
    """
    lower_query = query.lower()

    urgency = 'medium'
    if any(word in lower_query for word in URGENT_WORDS):
        urgency = 'high'

    category = None
    for keyword, candidate in CATEGORY_KEYWORDS.items():
        if keyword in lower_query:
            category = candidate
            break

    max_price = None
    match = MAX_PRICE_PATTERN.search(lower_query)
    if match:
        max_price = int(next(group for group in match.groups() if group))

    keywords = [
        word for word in FILLER_PATTERN.sub('', query).strip().split()
        if len(word) > 2
    ]

    return ParsedQuery(
        item=' '.join(keywords) or query,
        urgency=urgency,
        category=category,
        max_price=max_price,
        keywords=keywords or [query],
    )


def user_prompt(query):
    return (
        f'Parse this search query: "{query}"\n'
        'Return structured JSON with item, urgency, category, priceRange, condition, keywords'
    )


def _optional_text(payload, key):
    value = payload.get(key) or None
    if value is not None and not isinstance(value, str):
        raise ValueError(f'{key} must be a string')
    return value


def _optional_price(price_range, key):
    value = price_range.get(key)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f'priceRange.{key} must be a number')
    return value


def from_payload(payload, query):
    """Build a ParsedQuery from a remote JSON answer; raises ValueError when unusable."""
    if not isinstance(payload, dict):
        raise ValueError('Search parse payload must be an object')
    urgency = payload.get('urgency') or 'medium'
    if urgency not in URGENCY_LEVELS:
        urgency = 'medium'
    price_range = payload.get('priceRange') or {}
    if not isinstance(price_range, dict):
        raise ValueError('priceRange must be an object')
    keywords = payload.get('keywords') or [query]
    if not isinstance(keywords, list):
        raise ValueError('keywords must be a list')
    return ParsedQuery(
        item=_optional_text(payload, 'item') or query,
        urgency=urgency,
        category=_optional_text(payload, 'category'),
        min_price=_optional_price(price_range, 'min'),
        max_price=_optional_price(price_range, 'max'),
        condition=_optional_text(payload, 'condition'),
        keywords=[str(word) for word in keywords],
    )
