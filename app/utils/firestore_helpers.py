"""
Firestore query helpers built on the keyword filter API
(avoids the positional-argument deprecation warning).
"""

from google.cloud.firestore_v1.base_query import FieldFilter

# Firestore caps the number of values in an "in" filter
IN_QUERY_LIMIT = 10


def where_filter(query, field_path: str, op_string: str, value):
    """
    Apply a single field filter to a Firestore query or collection.

    Usage:
        query = where_filter(collection, "providerId", "==", provider_id)
        query = where_filter(query, "status", "==", "pending")
    """
    return query.where(filter=FieldFilter(field_path, op_string, value))


def chunked(values, size: int = IN_QUERY_LIMIT):
    """Split a list of values into chunks usable in an "in" filter."""
    values = list(values)
    for start in range(0, len(values), size):
        yield values[start:start + size]
