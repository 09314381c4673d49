"""
Safe meetup suggestions for in-person exchanges.
"""

from dataclasses import dataclass, field


DEFAULT_TIME_WINDOW = '2:00 PM - 5:00 PM (daylight hours)'

CAMPUS_SAFE_SPOTS = [
    {
        'name': 'Main Library Entrance',
        'type': 'library',
        'safety_rating': 5,
        'features': ['security cameras', 'well-lit', 'high foot traffic', 'campus security nearby'],
    },
    {
        'name': 'Student Union Building',
        'type': 'student_center',
        'safety_rating': 5,
        'features': ['open late', 'cafeteria', 'security desk', 'busy area'],
    },
    {
        'name': 'Campus Coffee Shop',
        'type': 'cafe',
        'safety_rating': 4,
        'features': ['public seating', 'staff present', 'daytime hours'],
    },
    {
        'name': 'Recreation Center Lobby',
        'type': 'rec_center',
        'safety_rating': 4,
        'features': ['check-in desk', 'cameras', 'student ID required'],
    },
    {
        'name': 'Campus Police Station',
        'type': 'police',
        'safety_rating': 5,
        'features': ['designated safe exchange zone', 'cameras', 'police presence'],
    },
]

SAFETY_TIPS = [
    'Meet during daylight hours when possible',
    'Choose a public, well-lit location',
    'Inform a friend of your meetup time and location',
    'Inspect the item before completing the transaction',
    'Use the in-app payment system for escrow protection',
    'Trust your instincts - if something feels off, cancel',
]

SYSTEM_PROMPT = """You are a location advisor for QuickGrab, a student marketplace.
Suggest safe meetup locations for a campus transaction.

Prioritize:
1. Well-lit, public spaces
2. Campus locations (libraries, student centers, cafeterias)
3. Security camera presence
4. Daytime availability

Return only JSON with:
- locations: array of { name, address, type, safetyRating (1-5), reasoning }
- suggestedTime: recommended meetup time window
- safetyTips: array of safety reminders"""


@dataclass(frozen=True)
class MeetupSuggestion:
    locations: list
    suggested_time: str = DEFAULT_TIME_WINDOW
    safety_tips: list = field(default_factory=lambda: list(SAFETY_TIPS))

    def as_dict(self):
        return {
            'locations': list(self.locations),
            'suggested_time': self.suggested_time,
            'safety_tips': list(self.safety_tips),
        }

    def as_message(self):
        """Render the suggestion as a chat message body."""
        lines = ['Suggested safe meetup spots:']
        lines.extend(
            f"- {location['name']} (safety {location['safety_rating']}/5)"
            for location in self.locations
        )
        lines.append(f'Best time: {self.suggested_time}')
        lines.append(f'Tip: {self.safety_tips[0]}')
        return '\n'.join(lines)


def suggest_meetup(count=3, hour=None):
    """
    Return the top campus safe spots with safety tips.

    The time window follows the given local hour; without one the default
    daylight window is used.
    """
    locations = [
        {
            'name': spot['name'],
            'address': 'Campus Main Building',
            'type': spot['type'],
            'safety_rating': spot['safety_rating'],
            'reasoning': f"{', '.join(spot['features'][:2])}. Great for campus transactions.",
        }
        for spot in CAMPUS_SAFE_SPOTS[:count]
    ]
    if hour is None:
        return MeetupSuggestion(locations=locations)
    return MeetupSuggestion(locations=locations, suggested_time=time_window(hour))


def time_window(hour):
    """Pick a meetup window for the given local hour (0-23)."""
    if hour < 12:
        return '12:00 PM - 3:00 PM today'
    if hour < 16:
        return 'Within the next 2 hours'
    if hour < 19:
        return 'Before sunset today'
    return 'Tomorrow 11:00 AM - 3:00 PM'


def user_prompt(item_name=None):
    subject = f' for "{item_name}"' if item_name else ''
    return (
        f'Suggest 3 safe meetup locations for a campus transaction{subject}.\n'
        'Prioritize public, well-lit campus locations.'
    )


def from_payload(payload):
    """Build a suggestion from a remote JSON answer; raises ValueError when unusable."""
    if not isinstance(payload, dict):
        raise ValueError('Meetup payload must be an object')
    raw_locations = payload.get('locations')
    if not raw_locations or not isinstance(raw_locations, list):
        raise ValueError('Meetup payload has no locations')
    locations = [
        {
            'name': str(location['name']),
            'address': location.get('address') or 'Campus Main Building',
            'type': location.get('type') or 'campus',
            'safety_rating': int(location.get('safetyRating') or 3),
            'reasoning': location.get('reasoning') or '',
        }
        for location in raw_locations
    ]
    return MeetupSuggestion(
        locations=locations,
        suggested_time=payload.get('suggestedTime') or DEFAULT_TIME_WINDOW,
        safety_tips=payload.get('safetyTips') or list(SAFETY_TIPS),
    )
