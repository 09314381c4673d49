"""
Dispute arbitration.

The heuristic resolver only ever produces low-confidence outcomes, so disputes
decided by it stay PENDING for manual review.
"""

from dataclasses import dataclass, field


BUYER_FAVOR = 'BUYER_FAVOR'
SELLER_FAVOR = 'SELLER_FAVOR'
SPLIT = 'SPLIT'
NEEDS_REVIEW = 'NEEDS_REVIEW'

RESOLUTION_DECISIONS = [BUYER_FAVOR, SELLER_FAVOR, SPLIT, NEEDS_REVIEW]

# Messages needed before the history alone counts as evidence
MIN_MESSAGE_HISTORY = 5

SYSTEM_PROMPT = """You are a dispute resolver for QuickGrab marketplace.
Analyze the transaction evidence and make a fair decision.

Consider:
1. Message history and timestamps
2. Photo evidence if provided
3. Previous behavior patterns
4. Transaction status and timeline

Return only JSON with:
- decision: "buyer_favor" | "seller_favor" | "split" | "needs_review"
- confidence: number (0-100)
- reasoning: string
- suggestedAction: string"""


@dataclass(frozen=True)
class DisputeEvidence:
    buyer_claim: str = ''
    seller_claim: str = ''
    message_history: list = field(default_factory=list)
    photo_count: int = 0
    timeline: dict = field(default_factory=dict)


@dataclass(frozen=True)
class DisputeResolution:
    decision: str
    confidence: int
    reasoning: str
    suggested_action: str

    def as_dict(self):
        return {
            'decision': self.decision,
            'confidence': self.confidence,
            'reasoning': self.reasoning,
            'suggested_action': self.suggested_action,
        }


def resolve_dispute(evidence):
    """
    Arbitrate a dispute from its evidence using fixed rules.

    Args:
        evidence: DisputeEvidence

    Returns:
        DisputeResolution
    """
    has_photos = evidence.photo_count > 0
    has_message_history = len(evidence.message_history) > MIN_MESSAGE_HISTORY

    if not has_photos and not has_message_history:
        return DisputeResolution(
            decision=NEEDS_REVIEW,
            confidence=30,
            reasoning='Insufficient evidence to make an automated decision.',
            suggested_action='Request additional evidence from both parties.',
        )

    if len(evidence.buyer_claim) > 2 * len(evidence.seller_claim) and has_photos:
        return DisputeResolution(
            decision=BUYER_FAVOR,
            confidence=60,
            reasoning='Buyer provided more detailed claim with photo evidence.',
            suggested_action='Process refund to buyer, warn seller.',
        )

    return DisputeResolution(
        decision=SPLIT,
        confidence=55,
        reasoning='Both parties present reasonable claims. Fair resolution is to split.',
        suggested_action='Refund 50% to buyer, release 50% to seller.',
    )


def user_prompt(transaction_id, evidence):
    timeline = '\n'.join(f'{key}: {value}' for key, value in evidence.timeline.items())
    messages = '\n'.join(evidence.message_history[-10:])
    return (
        f'Resolve this dispute for transaction {transaction_id}:\n\n'
        f"Buyer's claim: {evidence.buyer_claim}\n"
        f"Seller's claim: {evidence.seller_claim}\n\n"
        f'Message summary: {messages}\n'
        f'Number of photos provided: {evidence.photo_count}\n\n'
        f'Timeline:\n{timeline}\n\n'
        'Analyze and provide a fair resolution.'
    )


def from_payload(payload):
    """Build a resolution from a remote JSON answer; raises ValueError when unusable."""
    if not isinstance(payload, dict):
        raise ValueError('Dispute payload must be an object')
    decision = str(payload.get('decision') or NEEDS_REVIEW).upper()
    if decision not in RESOLUTION_DECISIONS:
        raise ValueError(f'Unexpected dispute decision: {decision!r}')
    confidence = int(float(payload.get('confidence') or 50))
    return DisputeResolution(
        decision=decision,
        confidence=max(0, min(100, confidence)),
        reasoning=payload.get('reasoning') or 'Unable to determine from available evidence',
        suggested_action=payload.get('suggestedAction') or 'Manual review required',
    )
