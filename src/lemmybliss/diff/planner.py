"""Diff planner: compute the relation mutations for a push.

Given the desired relation set (from the saved profile) and the current
one (freshly read from the destination), the planner produces the ordered
list of :class:`Mutation` objects the executor applies.  Everything here is
pure: no I/O, no clock, no mutation of its inputs.
"""

from __future__ import annotations

from collections.abc import Sequence

from lemmybliss.models import Info, Mutation, MutationAction, RelationKind, Target


def to_add(desired: Sequence[Target], current: Sequence[Target]) -> list[Target]:
    """Return the items of *desired* missing from *current*, in *desired*
    order.  Membership uses the cross-instance equality key."""
    present = set(current)
    return [item for item in desired if item not in present]


def to_remove(current: Sequence[Target], desired: Sequence[Target]) -> list[Target]:
    """Return the items of *current* absent from *desired*, in *current*
    order.  Only used by subtractive pushes."""
    return to_add(current, desired)


class DiffPlanner:
    """Plans the relation mutations that move *current* towards *desired*.

    Plan order, per push:

    1. follow communities missing on the destination,
    2. block communities missing on the destination,
    3. when subtractive: unfollow, then unblock, extra communities,
    4. block people missing on the destination,
    5. when subtractive: unblock extra people.

    Subtractive planning against an empty desired set removes every
    relation present, which is why it is never the default.
    """

    def plan(self, desired: Info, current: Info, subtractive: bool = False) -> list[Mutation]:
        """Compute the ordered mutation list.

        Parameters
        ----------
        desired:
            Relation set from the saved profile.
        current:
            Relation set read from the destination.
        subtractive:
            Also remove destination relations absent from *desired*.

        Returns
        -------
        list[Mutation]
            Empty when both sets already agree.
        """
        ops = self._additions(desired, current, RelationKind.COMMUNITY_FOLLOW)
        ops += self._additions(desired, current, RelationKind.COMMUNITY_BLOCK)
        if subtractive:
            ops += self._removals(desired, current, RelationKind.COMMUNITY_FOLLOW)
            ops += self._removals(desired, current, RelationKind.COMMUNITY_BLOCK)
        ops += self._additions(desired, current, RelationKind.PERSON_BLOCK)
        if subtractive:
            ops += self._removals(desired, current, RelationKind.PERSON_BLOCK)
        return ops

    @staticmethod
    def _additions(desired: Info, current: Info, kind: RelationKind) -> list[Mutation]:
        return [
            Mutation(kind=kind, action=MutationAction.ADD, target=target)
            for target in to_add(desired.relations(kind), current.relations(kind))
        ]

    @staticmethod
    def _removals(desired: Info, current: Info, kind: RelationKind) -> list[Mutation]:
        return [
            Mutation(kind=kind, action=MutationAction.REMOVE, target=target)
            for target in to_remove(current.relations(kind), desired.relations(kind))
        ]
