"""Concatenation of disjoint triangle soups."""

import logging
from typing import Iterable, Optional

import numpy as np

from .types import MeshMergeError, TriangleSoup

logger = logging.getLogger(__name__)


def concatenate(soups: Iterable[TriangleSoup]) -> TriangleSoup:
    """
    Concatenate triangle soups into a single soup.

    All inputs must carry the same set of per-vertex attributes.

    Raises:
        MeshMergeError: If attribute names or widths differ between inputs
    """
    soups = list(soups)
    if not soups:
        return TriangleSoup.empty()

    names = set(soups[0].attributes)
    for index, soup in enumerate(soups[1:], start=1):
        if set(soup.attributes) != names:
            raise MeshMergeError(
                f"Soup {index} has attributes {sorted(soup.attributes)}, "
                f"expected {sorted(names)}"
            )

    triangles = np.concatenate([s.triangles for s in soups], axis=0)

    attributes = {}
    for name in names:
        widths = {s.attributes[name].shape[-1] for s in soups}
        if len(widths) != 1:
            raise MeshMergeError(f"Attribute '{name}' has mixed widths {sorted(widths)}")
        attributes[name] = np.concatenate([s.attributes[name] for s in soups], axis=0)

    return TriangleSoup(triangles=triangles, attributes=attributes)


def merge_soups(soups: Iterable[TriangleSoup]) -> Optional[TriangleSoup]:
    """
    Merge a sequence of soups into one buffer.

    Args:
        soups: Soups to merge, in order

    Returns:
        The merged soup, or None when there is nothing to merge or the
        inputs are incompatible
    """
    soups = list(soups)
    if not soups:
        return None

    try:
        merged = concatenate(soups)
    except MeshMergeError as e:
        logger.warning(f"Geometry merge failed, dropping {len(soups)} soups: {e}")
        return None

    return merged
