"""Transcript marker rules for classifying finished agents.

The agent tool reports its outcome only by printing recognizable strings.
Rules are evaluated in order against the full transcript and the first
rule whose marker appears decides the status. A transcript matching no
rule is a plain completion.
"""

import re
from dataclasses import dataclass
from typing import List, Optional

from agentdash.config import MarkerConfig
from agentdash.state_machine import AUTH_ERROR, COMPLETED, ROADBLOCK

PR_URL_PATTERN = r"https://github\.com/[^\s/]+/[^\s/]+/pull/\d+"


@dataclass(frozen=True)
class MarkerRule:
    """A marker substring and the status it implies."""

    marker: str
    status: str


@dataclass
class Classification:
    """Outcome of scanning a transcript."""

    status: str
    pull_request_url: Optional[str] = None
    roadblock_reason: Optional[str] = None
    error_details: Optional[str] = None


def build_rules(markers: Optional[MarkerConfig] = None) -> List[MarkerRule]:
    """Build the ordered rule list: pull request, roadblock, then auth failures."""
    markers = markers or MarkerConfig()
    rules = [
        MarkerRule(markers.pull_request, COMPLETED),
        MarkerRule(markers.roadblock, ROADBLOCK),
    ]
    rules.extend(MarkerRule(phrase, AUTH_ERROR) for phrase in markers.auth_failures)
    return [rule for rule in rules if rule.marker]


def extract_pull_request_url(text: str, marker: str) -> Optional[str]:
    """Return the first PR URL that follows the marker, if any."""
    match = re.search(re.escape(marker) + r"\s*(" + PR_URL_PATTERN + ")", text)
    return match.group(1) if match else None


def extract_roadblock_reason(text: str, marker: str) -> str:
    """Return the rest of the first line carrying the roadblock marker."""
    match = re.search(re.escape(marker) + r"[ \t]*(.*)", text)
    return match.group(1).strip() if match else ""


def _line_containing(text: str, phrase: str) -> str:
    for line in text.splitlines():
        if phrase in line:
            return line.strip()
    return phrase


def classify_transcript(text: str, markers: Optional[MarkerConfig] = None) -> Classification:
    """Classify a finished agent's transcript.

    Args:
        text: Full transcript; may be empty or end mid-line
        markers: Marker configuration (defaults if omitted)

    Returns:
        Classification with the status and whichever detail field applies
    """
    for rule in build_rules(markers):
        if rule.marker not in text:
            continue

        if rule.status == ROADBLOCK:
            return Classification(
                status=ROADBLOCK,
                roadblock_reason=extract_roadblock_reason(text, rule.marker),
            )
        if rule.status == AUTH_ERROR:
            return Classification(
                status=AUTH_ERROR,
                error_details=_line_containing(text, rule.marker),
            )
        return Classification(
            status=COMPLETED,
            pull_request_url=extract_pull_request_url(text, rule.marker),
        )

    return Classification(status=COMPLETED)
