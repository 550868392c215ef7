"""Merging regenerated declarations with a file's previous declarations."""
from dataclasses import dataclass
from typing import Callable, List, Optional, Set
from normalized_query.core.workflow import ReconcileState
from normalized_query.generators.query_gen.source import render_declarations
from normalized_query.generators.query_gen.types import Declaration

# (new, existing) -> declaration to keep, or None to drop it.
# `new` is None when an existing declaration has no regenerated counterpart.
ConflictPolicy = Callable[[Optional[Declaration], Optional[Declaration]], Optional[Declaration]]


@dataclass
class ReconcileResult:
    state: ReconcileState
    declarations: List[Declaration]
    content: str


def _find_match(
    declaration: Declaration,
    existing: List[Declaration],
    handled: Set[int],
) -> Optional[int]:
    for position, candidate in enumerate(existing):
        if position in handled:
            continue
        if declaration.is_named:
            if candidate.name == declaration.name:
                return position
        elif not candidate.is_named and candidate.text == declaration.text:
            return position
    return None


def reconcile(
    new: List[Declaration],
    existing: Optional[List[Declaration]],
    policy: ConflictPolicy,
) -> ReconcileResult:
    """Merge regenerated declarations into previous ones.

    Named declarations match by name, anonymous ones (imports, comments)
    by exact text. Regenerated order wins; previous declarations with no
    counterpart are offered to the policy and appended when kept.
    """
    if existing is None:
        return ReconcileResult(ReconcileState.NO_PRIOR_CONTENT, list(new), render_declarations(new))

    handled: Set[int] = set()
    merged: List[Declaration] = []

    for declaration in new:
        position = _find_match(declaration, existing, handled)
        if position is None:
            merged.append(declaration)
            continue

        handled.add(position)
        previous = existing[position]
        if previous.text == declaration.text:
            merged.append(declaration)
            continue

        resolved = policy(declaration, previous)
        if resolved is not None:
            merged.append(resolved)

    seen_text = {declaration.text for declaration in merged}
    for position, previous in enumerate(existing):
        if position in handled:
            continue
        resolved = policy(None, previous)
        if resolved is None or resolved.text in seen_text:
            continue
        merged.append(resolved)
        seen_text.add(resolved.text)

    return ReconcileResult(ReconcileState.RESOLVED, merged, render_declarations(merged))
