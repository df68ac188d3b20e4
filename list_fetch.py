import logging

from app_errors import (
    BackendError,
    RemoteQueryError,
    SchemaError,
    TransportError,
    classify_exception,
    is_network_error,
)
from list_queries import (
    CONTENT_TABLE,
    LIST_LIMIT,
    PROGRESS_LIMIT,
    SORT_DEFAULT,
    category_entry,
    check_sort_mode,
    progress_descriptor,
    resolve_query_descriptor,
)
from models import ContentItem

logger = logging.getLogger(__name__)

# Codes the row API uses for an unknown column (undefined_column, bad request).
MISSING_COLUMN_CODES = ("42703", "400")


def is_missing_column_error(exc, column):
    """
    True when ``exc`` looks like the backend rejecting ``column`` because it
    does not exist yet.

    Matches the column name (underscore or hyphen spelling) in the message,
    or one of MISSING_COLUMN_CODES. Code 400 is broad: any bad request on an
    optional-column query is treated as "column not deployed yet".
    """
    if not isinstance(exc, SchemaError):
        return False
    message = exc.message or ""
    if column:
        if column in message or column.replace("_", "-") in message:
            return True
    return exc.code in MISSING_COLUMN_CODES


def _item_ids(rows):
    ids = []
    seen = set()
    for row in rows:
        raw = row.get("audiobook_id") if isinstance(row, dict) else None
        if raw is None:
            continue
        try:
            item_id = int(raw)
        except (TypeError, ValueError):
            continue
        # First occurrence keeps its position.
        if item_id in seen:
            continue
        seen.add(item_id)
        ids.append(item_id)
    return ids


class ListFetchCoordinator:
    def __init__(self, source, progress_limit=PROGRESS_LIMIT, list_limit=LIST_LIMIT):
        self.source = source
        self.progress_limit = progress_limit
        self.list_limit = list_limit

    def resolve_query_descriptor(self, category, sort_mode=SORT_DEFAULT):
        return resolve_query_descriptor(category, sort_mode, self.list_limit)

    def _to_items(self, rows):
        if not isinstance(rows, list):
            raise BackendError(f"Unexpected rows payload: {type(rows).__name__}")
        items = []
        for row in rows:
            if isinstance(row, dict):
                items.append(ContentItem(row))
        return items

    def _call(self, fn, *args, **kwargs):
        try:
            return fn(*args, **kwargs)
        except RemoteQueryError:
            raise
        except Exception as e:
            # Foreign client errors still need one of our error classes.
            if is_network_error(e):
                raise TransportError(str(e)) from e
            raise BackendError(str(e)) from e

    def fetch_list(self, descriptor):
        rows = self._call(
            self.source.query,
            descriptor.table,
            descriptor.filter_triples(),
            order=descriptor.order,
            limit=descriptor.limit,
            select=descriptor.select,
        )
        items = self._to_items(rows)
        logger.debug("fetch_list %r -> %s items", descriptor, len(items))
        return items

    def fetch_with_optional_column(self, descriptor, column):
        try:
            return self.fetch_list(descriptor)
        except SchemaError as e:
            if is_missing_column_error(e, column):
                logger.warning("Optional column %s unavailable, returning empty list: %s", column, e)
                return []
            raise

    def fetch_progress(self, user_id):
        descriptor = progress_descriptor(user_id, self.progress_limit)
        return self._call(
            self.source.query,
            descriptor.table,
            descriptor.filter_triples(),
            order=descriptor.order,
            limit=descriptor.limit,
            select=descriptor.select,
        )

    def fetch_reconciled(self, user_id, category):
        entry = category_entry(category)
        if not user_id:
            return []

        progress_rows = self.fetch_progress(user_id)
        if not progress_rows:
            return []

        ordered_ids = _item_ids(progress_rows)
        if not ordered_ids:
            return []

        filters = [(column, "eq", value) for column, value in entry["filters"]]
        rows = self._call(
            self.source.query_in_filter,
            CONTENT_TABLE,
            "id",
            ordered_ids,
            filters,
            select=entry["select"],
        )
        by_id = {item.id: item for item in self._to_items(rows)}

        result = [by_id[item_id] for item_id in ordered_ids if item_id in by_id]
        dropped = len(ordered_ids) - len(result)
        if dropped:
            logger.debug("Reconcile %s: %s progress ids without an approved item", category, dropped)
        return result

    def fetch(self, category, sort_mode=SORT_DEFAULT, user_id=None):
        entry = check_sort_mode(category, sort_mode)
        try:
            if entry["reconciled"]:
                return self.fetch_reconciled(user_id, category)
            descriptor = self.resolve_query_descriptor(category, sort_mode)
            if entry["optional_column"]:
                return self.fetch_with_optional_column(descriptor, entry["optional_column"])
            return self.fetch_list(descriptor)
        except RemoteQueryError as e:
            logger.warning("List fetch failed for %s/%s [%s]: %s", category, sort_mode, classify_exception(e), e)
            raise
