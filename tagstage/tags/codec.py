"""
Phase hashtag codec for ID3 comments.

Phases are stored as hashtags inside the free-text comment field, e.g.

    "great track #custom #starter #peak"

A comment is made of three parts:
    - free text: everything that is not a hashtag ("great track")
    - foreign tags: hashtags that are not configured phases ("#custom")
    - phase tags: hashtags naming a configured phase ("#starter #peak")

rebuild_comment() always writes the parts back in that order:
free text, foreign tags, phase tags. Free text segments are joined by a
single space with each segment's inner spacing untouched. Foreign tags
keep their spelling, order and repetitions. Phase tags follow the order
of the phase list passed in.

Phase names are matched case-insensitively against the configured list
and reported with the configured spelling.

All functions here are pure: no file or database access.
"""

import re
from typing import Iterable, Sequence

HASHTAG_RE = re.compile(r"#(\w+)")
PHASE_NAME_RE = re.compile(r"^\w+$")


def is_valid_phase_name(name: str) -> bool:
    """Return True if name can be written as a single #hashtag."""
    return isinstance(name, str) and PHASE_NAME_RE.match(name) is not None


def _phase_lookup(available_phases: Iterable[str]) -> dict[str, str]:
    """Map lowercased phase name -> configured spelling (first one wins)."""
    lookup: dict[str, str] = {}
    for phase in available_phases:
        lookup.setdefault(phase.lower(), phase)
    return lookup


def extract_hashtags(comment: str | None) -> list[str]:
    """
    Return every hashtag in the comment, without '#', in order.

    Unlike extract_phases() this does not filter or deduplicate.

    Example:
        extract_hashtags("nice #peak and #vocal #peak")  # ["peak", "vocal", "peak"]
    """
    if not comment:
        return []
    return HASHTAG_RE.findall(comment)


def extract_phases(comment: str | None, available_phases: Sequence[str]) -> list[str]:
    """
    Extract the phases tagged in a comment.

    Args:
        comment: The ID3 comment text, or None if the file has no comment.
        available_phases: The configured phase names.

    Returns:
        Phase names in order of first appearance, without duplicates,
        using the spelling from available_phases. Hashtags that are not
        configured phases are ignored.

    Example:
        extract_phases("#Peak notes #custom #peak", ["peak", "buildup"])  # ["peak"]
    """
    lookup = _phase_lookup(available_phases)
    phases: list[str] = []
    for tag in extract_hashtags(comment):
        phase = lookup.get(tag.lower())
        if phase is not None and phase not in phases:
            phases.append(phase)
    return phases


def toggle_phase(current_phases: Sequence[str], phase: str, enable: bool) -> list[str]:
    """
    Turn a phase on or off in a phase list.

    Args:
        current_phases: Phases currently set.
        phase: The phase to toggle.
        enable: True to add the phase, False to remove it.

    Returns:
        A new list. Enabling appends the phase if it is not already there;
        disabling removes every occurrence. Both directions are idempotent.
    """
    result: list[str] = []
    for existing in current_phases:
        if existing.lower() == phase.lower():
            if enable and existing not in result:
                result.append(existing)
            continue
        if existing not in result:
            result.append(existing)

    if enable and not any(p.lower() == phase.lower() for p in result):
        result.append(phase)
    return result


def split_comment(
    comment: str | None,
    available_phases: Sequence[str]
) -> tuple[str, list[str], list[str]]:
    """
    Split a comment into (free_text, foreign_tags, phases).

    foreign_tags keep the '#' and their original spelling; phases are
    deduplicated names as returned by extract_phases().

    Example:
        split_comment("#custom notes #peak", ["peak"])
        # ("notes", ["#custom"], ["peak"])
    """
    if not comment:
        return "", [], []

    lookup = _phase_lookup(available_phases)
    foreign_tags = [
        match.group(0)
        for match in HASHTAG_RE.finditer(comment)
        if match.group(1).lower() not in lookup
    ]
    segments = (segment.strip() for segment in HASHTAG_RE.split(comment)[::2])
    free_text = " ".join(segment for segment in segments if segment)

    return free_text, foreign_tags, extract_phases(comment, available_phases)


def rebuild_comment(
    original_comment: str | None,
    available_phases: Sequence[str],
    new_phases: Sequence[str]
) -> str:
    """
    Build a comment carrying new_phases while keeping everything else.

    Args:
        original_comment: The comment to start from (may be None).
        available_phases: The configured phase names.
        new_phases: The complete phase list the result should carry.
                    Callers pass names drawn from available_phases.

    Returns:
        "<free text> <foreign tags> <phase tags>", space-joined and trimmed.
        Phase tags present in original_comment are dropped and replaced by
        new_phases.

    Example:
        rebuild_comment("#custom notes #peak", ["peak"], [])  # "notes #custom"
        rebuild_comment("great track", ["peak"], ["peak"])    # "great track #peak"
    """
    free_text, foreign_tags, _ = split_comment(original_comment, available_phases)

    parts: list[str] = []
    if free_text:
        parts.append(free_text)
    parts.extend(foreign_tags)

    seen: set[str] = set()
    for phase in new_phases:
        if phase.lower() in seen:
            continue
        seen.add(phase.lower())
        parts.append(f"#{phase}")

    return " ".join(parts).strip()
