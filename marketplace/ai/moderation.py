"""
Chat moderation and transaction scam-risk scoring.
"""

from dataclasses import dataclass, field


ALLOW = 'allow'
WARN = 'warn'
REVIEW = 'review'
BLOCK = 'block'

MODERATION_ACTIONS = [ALLOW, WARN, REVIEW, BLOCK]
SEVERITIES = ['none', 'low', 'medium', 'high']

TOXIC_WORDS = ['stupid', 'idiot', 'scam', 'fake', 'threat', 'kill']
SCAM_PHRASES = ['send money', 'western union', 'gift card', 'wire transfer', 'venmo me first']
SUSPICIOUS_LINKS = ['bit.ly', 'tinyurl', 'click here']

SCAM_THRESHOLD = 50
MAX_SCAM_CONFIDENCE = 95

SYSTEM_PROMPT = """You are a content moderator for QuickGrab, a student marketplace.
Analyze the content for:
1. Toxic language (insults, threats, harassment)
2. Scam indicators (suspicious links, pressure tactics, requests for personal info)
3. Inappropriate content
4. Policy violations

Return only JSON with:
- isSafe: boolean
- flags: string[] (list of issues found)
- severity: "none" | "low" | "medium" | "high"
- action: "allow" | "warn" | "block" | "review"
"""


@dataclass(frozen=True)
class ModerationResult:
    is_safe: bool
    flags: list = field(default_factory=list)
    severity: str = 'none'
    action: str = ALLOW

    @property
    def blocked(self):
        return self.action == BLOCK

    def as_dict(self):
        return {
            'is_safe': self.is_safe,
            'flags': list(self.flags),
            'severity': self.severity,
            'action': self.action,
        }


@dataclass(frozen=True)
class ScamAssessment:
    is_scam: bool
    confidence: int
    indicators: list
    recommendation: str

    def as_dict(self):
        return {
            'is_scam': self.is_scam,
            'confidence': self.confidence,
            'indicators': list(self.indicators),
            'recommendation': self.recommendation,
        }


def moderate(content):
    """
    Flag toxic words, scam phrases and suspicious links in a chat message.

    Severity and action scale with the number of flags raised; the heuristic
    never blocks outright.
    """
    lower_content = (content or '').lower()
    flags = []

    for word in TOXIC_WORDS:
        if word in lower_content:
            flags.append(f'Contains potentially toxic word: {word}')
    for phrase in SCAM_PHRASES:
        if phrase in lower_content:
            flags.append(f'Possible scam indicator: {phrase}')
    for link in SUSPICIOUS_LINKS:
        if link in lower_content:
            flags.append(f'Suspicious link detected: {link}')

    if not flags:
        severity = 'none'
    elif len(flags) == 1:
        severity = 'low'
    elif len(flags) < 3:
        severity = 'medium'
    else:
        severity = 'high'

    if not flags:
        action = ALLOW
    elif len(flags) < 2:
        action = WARN
    else:
        action = REVIEW

    return ModerationResult(is_safe=not flags, flags=flags, severity=severity, action=action)


def detect_scam(cancellation_rate, completed_deals, avg_rating, price, market_price,
                message_count=0, response_seconds=None):
    """
    Score how risky a transaction looks from the seller's history and the deal.

    Args:
        cancellation_rate: Seller's cancellation rate in [0, 1]
        completed_deals: Seller's completed deal count
        avg_rating: Seller's average rating
        price: Agreed price
        market_price: Typical campus price for the item
        message_count: Messages exchanged so far
        response_seconds: Average reply delay, or None when unknown

    Returns:
        ScamAssessment
    """
    cancellation_rate = float(cancellation_rate or 0)
    avg_rating = float(avg_rating or 0)
    completed_deals = int(completed_deals or 0)
    indicators = []
    score = 0

    if cancellation_rate > 0.3:
        indicators.append('High cancellation rate')
        score += 30

    if avg_rating < 2 and completed_deals > 5:
        indicators.append('Poor seller rating')
        score += 25

    if market_price and float(price) < float(market_price) * 0.5:
        indicators.append('Price significantly below market value')
        score += 20

    if response_seconds is not None and response_seconds < 5 and message_count > 10:
        indicators.append('Unusually aggressive messaging')
        score += 15

    if completed_deals == 0:
        indicators.append('New seller with no transaction history')
        score += 10

    is_scam = score >= SCAM_THRESHOLD
    if is_scam:
        recommendation = 'High risk transaction. Consider canceling or meeting in a very public place.'
    elif indicators:
        recommendation = 'Some risk factors detected. Proceed with caution.'
    else:
        recommendation = 'Transaction appears safe.'

    return ScamAssessment(
        is_scam=is_scam,
        confidence=min(score, MAX_SCAM_CONFIDENCE),
        indicators=indicators,
        recommendation=recommendation,
    )


def user_prompt(content):
    return f'Moderate this message: "{content}"'


def from_payload(payload):
    """Build a moderation result from a remote JSON answer; raises ValueError when unusable."""
    if not isinstance(payload, dict):
        raise ValueError('Moderation payload must be an object')
    action = payload.get('action') or ALLOW
    if action not in MODERATION_ACTIONS:
        raise ValueError(f'Unexpected moderation action: {action!r}')
    severity = payload.get('severity') or 'none'
    if severity not in SEVERITIES:
        severity = 'none'
    flags = payload.get('flags') or []
    is_safe = payload.get('isSafe')
    return ModerationResult(
        is_safe=bool(is_safe) if is_safe is not None else True,
        flags=[str(flag) for flag in flags],
        severity=severity,
        action=action,
    )
