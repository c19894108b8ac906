"""
Curiosity alignment of a content step with a learner's interest profile
"""
from typing import Iterable, Optional

from golden_path.curiosity.models import CuriosityProfile

NEUTRAL_ALIGNMENT = 0.5
TAG_WEIGHT = 0.7
DOMAIN_WEIGHT = 0.3


def curiosity_alignment(
    tags: Iterable[str],
    domain: Optional[str],
    profile: Optional[CuriosityProfile],
) -> float:
    """
    0.7 * share of tags among the learner's interest topics
    + 0.3 * whether the domain is one of the learner's interest domains.

    Without a profile the alignment is a neutral 0.5.
    """
    if profile is None:
        return NEUTRAL_ALIGNMENT

    tag_set = {t.lower() for t in tags}
    interest_topics = profile.interest_topics()
    tag_overlap = len(tag_set & interest_topics) / len(tag_set) if tag_set else 0.0

    domain_match = 1.0 if domain and domain.lower() in profile.interest_domains() else 0.0
    return max(0.0, min(1.0, TAG_WEIGHT * tag_overlap + DOMAIN_WEIGHT * domain_match))
