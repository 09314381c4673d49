"""
Price fairness checks against typical campus resale prices.
"""

from dataclasses import dataclass


OVERPRICED = 'Overpriced'
FAIR = 'Fair'
UNDERPRICED = 'Underpriced'
GREAT_DEAL = 'Great Deal'

PRICE_RATINGS = [OVERPRICED, FAIR, UNDERPRICED, GREAT_DEAL]

# Static campus averages; matched by substring against the item name in table order
CAMPUS_PRICE_ESTIMATES = {
    'iphone charger': {'avg_price': 15, 'category': 'electronics'},
    'laptop charger': {'avg_price': 35, 'category': 'electronics'},
    'usb cable': {'avg_price': 8, 'category': 'electronics'},
    'textbook': {'avg_price': 45, 'category': 'books'},
    'calculator': {'avg_price': 25, 'category': 'electronics'},
    'headphones': {'avg_price': 40, 'category': 'electronics'},
    'desk lamp': {'avg_price': 20, 'category': 'furniture'},
    'chair': {'avg_price': 50, 'category': 'furniture'},
    'backpack': {'avg_price': 30, 'category': 'accessories'},
    'bike': {'avg_price': 100, 'category': 'transportation'},
}

CONDITION_MULTIPLIERS = {
    'NEW': 1.2,
    'LIKE_NEW': 1.0,
    'GOOD': 0.85,
    'FAIR': 0.7,
    'POOR': 0.5,
}
DEFAULT_CONDITION_MULTIPLIER = 0.85

SYSTEM_PROMPT = """You are a price analyst for QuickGrab, a student marketplace.
Analyze the given item and price to determine if it's fairly priced compared to typical campus/secondhand market prices.

Consider:
1. Original retail price of item
2. Condition depreciation
3. Campus marketplace typical pricing
4. Seasonal demand

Return only JSON with:
- rating: "Fair" | "Overpriced" | "Underpriced" | "Great Deal"
- percentageDiff: number (how much above/below average, negative for underpriced)
- averagePrice: number (estimated fair market price)
- explanation: string (brief explanation)"""


@dataclass(frozen=True)
class PriceCheckResult:
    rating: str
    percentage_diff: int
    average_price: float
    explanation: str

    def as_dict(self):
        return {
            'rating': self.rating,
            'percentage_diff': self.percentage_diff,
            'average_price': self.average_price,
            'explanation': self.explanation,
        }


def normalize_condition(condition):
    """Accept 'like new', 'Like_New', 'LIKE_NEW' and friends."""
    return (condition or 'GOOD').strip().upper().replace(' ', '_').replace('-', '_')


def lookup_campus_average(item_name):
    """
    Find the campus average price for an item name.

    Returns:
        float or None: Average price of the first matching table entry
    """
    lower_name = (item_name or '').lower().strip()
    if not lower_name:
        return None
    for key, data in CAMPUS_PRICE_ESTIMATES.items():
        if key in lower_name or lower_name in key:
            return float(data['avg_price'])
    return None


def check_price(item_name, price, condition='GOOD'):
    """
    Classify a listing price against the adjusted campus average.

    Buckets on the percent deviation from the condition-adjusted average:
    > +30% Overpriced, -10%..+30% Fair, -30%..-10% Underpriced, < -30% Great Deal.
    Unknown items use their own listed price as the campus average.

    Args:
        item_name: Listing title
        price: Listed price
        condition: Item condition (NEW, LIKE_NEW, GOOD, FAIR, POOR)

    Returns:
        PriceCheckResult
    """
    price = float(price)
    avg_price = lookup_campus_average(item_name)
    if avg_price is None:
        avg_price = price

    multiplier = CONDITION_MULTIPLIERS.get(
        normalize_condition(condition), DEFAULT_CONDITION_MULTIPLIER
    )
    adjusted_avg = avg_price * multiplier
    if adjusted_avg <= 0:
        return PriceCheckResult(FAIR, 0, round(price), 'Price analysis unavailable')

    percentage_diff = (price - adjusted_avg) / adjusted_avg * 100

    if percentage_diff > 30:
        rating = OVERPRICED
        explanation = (
            f'This item is priced {abs(round(percentage_diff))}% above the typical campus price.'
        )
    elif percentage_diff > 10:
        rating = FAIR
        explanation = 'Price is slightly above average but within acceptable range.'
    elif percentage_diff > -10:
        rating = FAIR
        explanation = 'Price is in line with typical campus marketplace prices.'
    elif percentage_diff > -30:
        rating = UNDERPRICED
        explanation = 'Good value! This is priced below average.'
    else:
        rating = GREAT_DEAL
        explanation = (
            f'Excellent price! {abs(round(percentage_diff))}% below typical campus price.'
        )

    return PriceCheckResult(
        rating=rating,
        percentage_diff=round(percentage_diff),
        average_price=round(adjusted_avg),
        explanation=explanation,
    )


def user_prompt(item_name, price, condition):
    return (
        'Check if this price is fair:\n'
        f'Item: {item_name}\n'
        f'Listed Price: ${price}\n'
        f'Condition: {condition}\n\n'
        'Analyze and return pricing assessment JSON.'
    )


def from_payload(payload, price):
    """Build a result from a remote JSON answer; raises ValueError when unusable."""
    if not isinstance(payload, dict):
        raise ValueError('Price check payload must be an object')
    rating = payload.get('rating')
    if rating not in PRICE_RATINGS:
        raise ValueError(f'Unexpected price rating: {rating!r}')
    return PriceCheckResult(
        rating=rating,
        percentage_diff=round(float(payload.get('percentageDiff') or 0)),
        average_price=round(float(payload.get('averagePrice') or price)),
        explanation=payload.get('explanation') or 'Price analysis unavailable',
    )
