"""
Query shapes for the content list screens.

Every list screen reads the same content table; what differs is the set of
fixed equality filters, the implicit default order and which sort modes the
sort menu offers. All of that lives in ``CATEGORY_TABLE`` so the mapping from
(category, sort mode) to a query stays exhaustive and testable.
"""

CONTENT_TABLE = "audiobooks"
PROGRESS_TABLE = "listening_progress"

LIST_LIMIT = 100
PROGRESS_LIMIT = 50

# Books screen
NEW_RELEASES = "new_releases"
FEATURED = "featured"
POPULAR = "popular"
RECENTLY_PLAYED = "recently_played"
PODCASTS = "podcasts"
ARTICLES = "articles"
# Music screen
MUSIC_NEW_RELEASES = "music_new_releases"
MUSIC_FEATURED = "music_featured"
MUSIC_POPULAR = "music_popular"
CONTINUE_LISTENING = "continue_listening"

SORT_DEFAULT = "default"
SORT_NEWEST = "newest"
SORT_POPULAR = "popular"
SORT_RATING = "rating"
SORT_TITLE = "title"

SORT_MODES = (SORT_DEFAULT, SORT_NEWEST, SORT_POPULAR, SORT_RATING, SORT_TITLE)

ORDER_COLUMNS = ("created_at", "play_count", "avg_rating", "title_fa", "updated_at")

BOOK_SELECT = "*, book_metadata(narrator_name)"
MUSIC_SELECT = (
    "id, title_fa, title_en, cover_url, is_music, is_free, is_parasto_brand, "
    "author_fa, play_count, avg_rating, created_at, status, "
    "music_metadata(artist_name, featured_artists)"
)
PROGRESS_SELECT = "audiobook_id, updated_at"

# sort mode -> (order column, ascending)
SORT_OVERRIDES = {
    SORT_NEWEST: ("created_at", False),
    SORT_POPULAR: ("play_count", False),
    SORT_RATING: ("avg_rating", False),
    SORT_TITLE: ("title_fa", True),
}

_APPROVED = ("status", "approved")

CATEGORY_TABLE = {
    NEW_RELEASES: {
        "order": ("created_at", False),
        "filters": (_APPROVED, ("is_music", False)),
        "select": BOOK_SELECT,
        "optional_column": None,
        "reconciled": False,
        "music": False,
        "sorts": (SORT_DEFAULT, SORT_POPULAR, SORT_RATING, SORT_TITLE),
    },
    FEATURED: {
        "order": ("created_at", False),
        "filters": (_APPROVED, ("is_music", False), ("is_featured", True)),
        "select": BOOK_SELECT,
        "optional_column": None,
        "reconciled": False,
        "music": False,
        "sorts": (SORT_DEFAULT, SORT_NEWEST, SORT_POPULAR, SORT_RATING, SORT_TITLE),
    },
    POPULAR: {
        "order": ("play_count", False),
        "filters": (_APPROVED, ("is_music", False)),
        "select": BOOK_SELECT,
        "optional_column": None,
        "reconciled": False,
        "music": False,
        "sorts": (SORT_DEFAULT, SORT_NEWEST, SORT_RATING, SORT_TITLE),
    },
    RECENTLY_PLAYED: {
        "order": ("updated_at", False),
        "filters": (_APPROVED, ("is_music", False)),
        "select": BOOK_SELECT,
        "optional_column": None,
        "reconciled": True,
        "music": False,
        "sorts": (SORT_DEFAULT,),
    },
    PODCASTS: {
        "order": ("created_at", False),
        "filters": (_APPROVED, ("is_podcast", True)),
        "select": BOOK_SELECT,
        "optional_column": "is_podcast",
        "reconciled": False,
        "music": False,
        "sorts": (SORT_DEFAULT, SORT_POPULAR, SORT_RATING, SORT_TITLE),
    },
    ARTICLES: {
        "order": ("created_at", False),
        "filters": (_APPROVED, ("is_article", True)),
        "select": BOOK_SELECT,
        "optional_column": "is_article",
        "reconciled": False,
        "music": False,
        "sorts": (SORT_DEFAULT, SORT_POPULAR, SORT_RATING, SORT_TITLE),
    },
    MUSIC_NEW_RELEASES: {
        "order": ("created_at", False),
        "filters": (_APPROVED, ("is_music", True)),
        "select": MUSIC_SELECT,
        "optional_column": None,
        "reconciled": False,
        "music": True,
        "sorts": (SORT_DEFAULT, SORT_POPULAR, SORT_RATING, SORT_TITLE),
    },
    MUSIC_FEATURED: {
        "order": ("created_at", False),
        "filters": (_APPROVED, ("is_music", True), ("is_featured", True)),
        "select": MUSIC_SELECT,
        "optional_column": None,
        "reconciled": False,
        "music": True,
        "sorts": (SORT_DEFAULT, SORT_NEWEST, SORT_POPULAR, SORT_RATING, SORT_TITLE),
    },
    MUSIC_POPULAR: {
        "order": ("play_count", False),
        "filters": (_APPROVED, ("is_music", True)),
        "select": MUSIC_SELECT,
        "optional_column": None,
        "reconciled": False,
        "music": True,
        "sorts": (SORT_DEFAULT, SORT_NEWEST, SORT_RATING, SORT_TITLE),
    },
    CONTINUE_LISTENING: {
        "order": ("updated_at", False),
        "filters": (_APPROVED, ("is_music", True)),
        "select": MUSIC_SELECT,
        "optional_column": None,
        "reconciled": True,
        "music": True,
        "sorts": (SORT_DEFAULT,),
    },
}

CATEGORIES = tuple(CATEGORY_TABLE)


class QueryDescriptor:
    __slots__ = ("table", "select", "order_column", "ascending", "filters", "limit")

    def __init__(self, table, order_column, ascending, filters=(), limit=LIST_LIMIT, select="*"):
        if order_column not in ORDER_COLUMNS:
            raise ValueError(f"Unsupported order column: {order_column}")
        self.table = table
        self.select = select
        self.order_column = order_column
        self.ascending = bool(ascending)
        self.filters = tuple(filters)
        self.limit = int(limit)

    @property
    def order(self):
        return (self.order_column, self.ascending)

    def filter_triples(self):
        return [(column, "eq", value) for column, value in self.filters]

    def _key(self):
        return (self.table, self.select, self.order_column, self.ascending, self.filters, self.limit)

    def __eq__(self, other):
        if not isinstance(other, QueryDescriptor):
            return NotImplemented
        return self._key() == other._key()

    def __hash__(self):
        return hash(self._key())

    def __repr__(self):
        direction = "asc" if self.ascending else "desc"
        return (
            f"QueryDescriptor({self.table} order={self.order_column} {direction} "
            f"filters={list(self.filters)} limit={self.limit})"
        )


def category_entry(category):
    try:
        return CATEGORY_TABLE[category]
    except KeyError:
        raise ValueError(f"Unknown category: {category}") from None


def is_reconciled(category):
    return category_entry(category)["reconciled"]


def is_music(category):
    return category_entry(category)["music"]


def optional_column(category):
    return category_entry(category)["optional_column"]


def sort_options(category):
    return category_entry(category)["sorts"]


def check_sort_mode(category, sort_mode):
    """
    Return the category's table entry, rejecting sort modes it cannot honour.

    Recency categories are ordered by the progress fetch, so only their
    default sort exists.
    """
    entry = category_entry(category)
    if sort_mode not in SORT_MODES:
        raise ValueError(f"Unknown sort mode: {sort_mode}")
    if entry["reconciled"] and sort_mode not in entry["sorts"]:
        raise ValueError(f"Sort mode {sort_mode} is not available for {category}")
    return entry


def resolve_query_descriptor(category, sort_mode=SORT_DEFAULT, limit=LIST_LIMIT):
    """
    Map (category, sort mode) to the content query.

    Recency categories keep ``updated_at`` descending: their order comes
    from the progress fetch, not from the content table.
    """
    entry = check_sort_mode(category, sort_mode)

    order_column, ascending = entry["order"]
    limit = min(int(limit), LIST_LIMIT)
    if entry["reconciled"]:
        limit = PROGRESS_LIMIT
    elif sort_mode != SORT_DEFAULT:
        order_column, ascending = SORT_OVERRIDES[sort_mode]

    return QueryDescriptor(
        CONTENT_TABLE,
        order_column,
        ascending,
        filters=entry["filters"],
        limit=limit,
        select=entry["select"],
    )


def progress_descriptor(user_id, limit=PROGRESS_LIMIT):
    return QueryDescriptor(
        PROGRESS_TABLE,
        "updated_at",
        False,
        filters=(("user_id", user_id),),
        limit=min(int(limit), PROGRESS_LIMIT),
        select=PROGRESS_SELECT,
    )
