"""
Base ask-type classification from a connector's title.

Recruiting roles can make a formal referral, people managers are best asked
for context, everyone else for an introduction.
"""

import re

from src.services.scout.models import AskType

REFERRAL_KEYWORDS = ("recruiter", "recruiting", "talent", "people partner")
CONTEXT_KEYWORDS = ("manager", "director", "lead", "head of", "vp")

# "TA" (talent acquisition) only as a standalone word, so "data" or "staff" do not match
TALENT_ACQUISITION_PATTERN = re.compile(r"\bta\b")


def classify_ask_type(title: str) -> AskType:
    """
    Classify the base ask for a connector title.

    Examples:
        >>> classify_ask_type("Senior Technical Recruiter")
        <AskType.REFERRAL: 'referral'>
        >>> classify_ask_type("Engineering Manager")
        <AskType.CONTEXT: 'context'>
        >>> classify_ask_type("Software Engineer")
        <AskType.INTRO: 'intro'>
    """
    normalized = (title or "").lower()

    if any(word in normalized for word in REFERRAL_KEYWORDS) or TALENT_ACQUISITION_PATTERN.search(normalized):
        return AskType.REFERRAL

    if any(word in normalized for word in CONTEXT_KEYWORDS):
        return AskType.CONTEXT

    return AskType.INTRO
