"""Common-item checks shared by the linking methods."""

from irtequate.models.base import ItemSet


class DimensionMismatchError(ValueError):
    """Raised when two forms do not share exactly the same common items.

    Parameters
    ----------
    first : int
        Size of Form X, or the number of unmatched items.
    second : int
        Size of Form Y, or zero when ``first`` is a mismatch count.
    message : str
        Human readable description.
    """

    def __init__(self, first: int, second: int, message: str) -> None:
        super().__init__(message)
        self.first = first
        self.second = second


def check_common_items(form_x: ItemSet, form_y: ItemSet) -> list[str]:
    """Validate that both forms hold the same common items.

    Parameters
    ----------
    form_x : ItemSet
        Items of Form X keyed by name.
    form_y : ItemSet
        Items of Form Y keyed by name.

    Returns
    -------
    list[str]
        Item names in Form Y order, the iteration order used by all
        linking computations.

    Raises
    ------
    DimensionMismatchError
        If the forms differ in size or in item names.
    """
    if len(form_x) != len(form_y):
        raise DimensionMismatchError(
            len(form_x),
            len(form_y),
            f"Forms must contain the same common items: Form X has {len(form_x)} "
            f"items and Form Y has {len(form_y)}",
        )
    if len(form_y) == 0:
        raise ValueError("At least one common item is required")

    mismatch = set(form_x).symmetric_difference(form_y)
    if mismatch:
        raise DimensionMismatchError(
            len(mismatch),
            0,
            f"Forms must contain the same common items: {len(mismatch)} unmatched "
            f"item(s) {sorted(mismatch)}",
        )
    return list(form_y)
