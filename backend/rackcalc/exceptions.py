"""Domain exceptions raised by the variant engine."""
from typing import List


class RackcalcError(Exception):
    """Base class for all rackcalc domain errors."""


class VariantNotFoundError(RackcalcError):
    """Raised when an operation names a variant id that does not exist."""

    def __init__(self, variant_id: str):
        self.variant_id = variant_id
        super().__init__(f"Variant {variant_id} not found")


class VariantHierarchyError(RackcalcError):
    """
    Raised when a re-parent would make a variant its own ancestor.

    The aggregate is left untouched; the message explains which node blocked
    the move so the caller can show it to the user.
        VARIANT_CYCLE: Cannot move variant 'a' under 'c': 'c' is inside the subtree of 'a' ([...]).
    """

    def __init__(self, variant_id: str, target_parent_id: str, subtree_ids: List[str]):
        self.variant_id = variant_id
        self.target_parent_id = target_parent_id
        self.subtree_ids = subtree_ids
        super().__init__(
            f"VARIANT_CYCLE: Cannot move variant '{variant_id}' under '{target_parent_id}': "
            f"'{target_parent_id}' is inside the subtree of '{variant_id}' ({sorted(subtree_ids)})."
        )
