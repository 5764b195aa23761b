"""Reintroduces the circular references the server strips from schema trees.

The server serializes a possibly cyclic graph of model references as a tree:
the subfields of a referenced model are emitted on the first occurrence of its
``ref`` only. Later occurrences come without subfields (or with a stub). This
module links every later occurrence back to the subfields list of the first
one, so nodes sharing a ``ref`` share the identical list object afterwards.

The result is a graph that may contain cycles. Consumers walking it must guard
against revisiting nodes.
"""

import logging
from typing import Any, Dict, List, MutableMapping, Optional

from .models import SchemaField

logger = logging.getLogger(__name__)


def recycle_schema_fields(fields: List[SchemaField]) -> List[SchemaField]:
    """Relink repeated ``ref`` subtrees of ``fields`` in place.

    Traversal is depth-first pre-order from a synthetic root holding
    ``fields`` as its subfields. The ref scope is global to the call. A ref
    whose first occurrence carried no subfields is recorded again by the next
    occurrence that does.

    Args:
        fields: Top level field list as returned by the schema or fields route

    Returns:
        The same list object, now sharing subfields between equal refs
    """
    processed_refs: Dict[str, Optional[List[SchemaField]]] = {}
    visited = 0

    # Children are pushed reversed so they pop in document order.
    stack: List[MutableMapping[str, Any]] = [{"subfields": fields}]
    while stack:
        field = stack.pop()
        visited += 1

        ref = field.get("ref")
        if ref:
            if processed_refs.get(ref) is not None:
                field["subfields"] = processed_refs[ref]
                continue
            processed_refs[ref] = field.get("subfields")

        subfields = field.get("subfields")
        if subfields:
            stack.extend(reversed(subfields))

    logger.debug(
        f"Recycled schema: {visited - 1} fields visited, {len(processed_refs)} refs"
    )
    return fields
