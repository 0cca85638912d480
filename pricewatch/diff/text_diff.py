"""
Sentence-block text differ.
"""

from __future__ import annotations

import re

from pricewatch.domain.diff import ChangedBlock, TextDiffResult

MIN_DIFF_LENGTH = 10
MIN_BLOCK_LENGTH = 5
SUMMARY_BLOCK_LIMIT = 3
SUMMARY_TRUNCATE_AT = 100

_SENTENCE_SPLIT = re.compile(r"[.!?]\s+")


def split_blocks(text: str) -> list[str]:
    blocks = (block.strip() for block in _SENTENCE_SPLIT.split(text))
    return [block for block in blocks if len(block) > MIN_BLOCK_LENGTH]


def compute_diff(
    old_text: str,
    new_text: str,
    *,
    old_hash: str | None = None,
    new_hash: str | None = None,
) -> TextDiffResult:
    """
    Set difference of sentence blocks between two texts.

    Matching hashes, identical texts, or less than `MIN_DIFF_LENGTH`
    characters of changed material all count as no change.
    """

    if old_hash is not None and old_hash == new_hash:
        return TextDiffResult(has_changes=False)
    if old_text == new_text:
        return TextDiffResult(has_changes=False)

    old_blocks = split_blocks(old_text)
    new_blocks = split_blocks(new_text)
    old_set = set(old_blocks)
    new_set = set(new_blocks)

    removed = [block for block in old_blocks if block not in new_set]
    added = [block for block in new_blocks if block not in old_set]
    removed = list(dict.fromkeys(removed))
    added = list(dict.fromkeys(added))

    if len(" ".join(removed)) + len(" ".join(added)) < MIN_DIFF_LENGTH:
        return TextDiffResult(has_changes=False)

    changed_blocks = [
        ChangedBlock(
            before=removed[index] if index < len(removed) else None,
            after=added[index] if index < len(added) else None,
        )
        for index in range(max(len(removed), len(added)))
    ]
    return TextDiffResult(
        has_changes=True,
        added=added,
        removed=removed,
        changed_blocks=changed_blocks,
    )


def _truncate(text: str, limit: int = SUMMARY_TRUNCATE_AT) -> str:
    return text if len(text) <= limit else f"{text[:limit]}..."


def summarize_diff(result: TextDiffResult) -> str:
    if not result.has_changes:
        return "No changes detected"

    lines: list[str] = []
    for block in result.changed_blocks[:SUMMARY_BLOCK_LIMIT]:
        if block.before and block.after:
            lines.append(f'Changed: "{_truncate(block.before)}" -> "{_truncate(block.after)}"')
        elif block.after:
            lines.append(f'Added: "{_truncate(block.after)}"')
        elif block.before:
            lines.append(f'Removed: "{_truncate(block.before)}"')

    remaining = len(result.changed_blocks) - SUMMARY_BLOCK_LIMIT
    if remaining > 0:
        lines.append(f"...and {remaining} more changes")
    return "\n".join(lines)
