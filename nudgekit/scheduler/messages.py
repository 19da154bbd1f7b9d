"""
Re-engagement message catalog.
"""
import random
from dataclasses import dataclass
from typing import List, Optional, Sequence


@dataclass(frozen=True)
class EngagementMessage:
    title: str
    body: str


ENGAGEMENT_MESSAGES: List[EngagementMessage] = [
    EngagementMessage(
        title="Have you met anyone new recently? 👀",
        body="Add them to your profiles so you never forget the important details 🧠",
    ),
    EngagementMessage(
        title="A quick hello can go a long way 🙂",
        body="Double check your profiles so you can get the details right.",
    ),
    EngagementMessage(
        title="Don't let your roster go quiet 🔔",
        body="Check upcoming reminders, add new people, and check in with people "
             "you haven't spoken to in a while.",
    ),
    EngagementMessage(
        title="Are your profiles up to date? 🤔",
        body="Review notes, update details, and keep your roster fresh.",
    ),
    EngagementMessage(
        title="Check in with your people 👋",
        body="Don't forget the important details. We've got your back.",
    ),
]


def pick_message(
    rng: random.Random,
    catalog: Optional[Sequence[EngagementMessage]] = None,
) -> EngagementMessage:
    """Uniformly random message from the catalog."""
    return rng.choice(catalog or ENGAGEMENT_MESSAGES)
