from threading import Thread
import logging

from app_errors import classify_exception, is_network_error, user_message
from list_queries import SORT_DEFAULT, SORT_MODES, is_music, sort_options
from list_screen import STATE_ERRORED, STATE_LOADED, STATE_LOADING
import ui_config

logger = logging.getLogger(__name__)


def _is_current(screen, request_id):
    return request_id == getattr(screen, "_list_request_id", 0)


def load_list(screen, background=True):
    """Start a fetch for the screen's category/sort; returns its request id."""
    with screen.lock:
        screen._list_request_id = getattr(screen, "_list_request_id", 0) + 1
        request_id = screen._list_request_id
        category = screen.category
        sort_mode = screen.sort_mode
        user_id = screen.user_id
        screen.state = STATE_LOADING
        screen.error_kind = None
        screen.error_message = None
        screen.notify()
    logger.info("Loading list %s (sort=%s, request=%s)", category, sort_mode, request_id)

    def do_fetch():
        try:
            items = screen.coordinator.fetch(category, sort_mode, user_id=user_id)
        except Exception as e:
            screen.dispatch(apply_error, screen, request_id, e)
            return
        screen.dispatch(apply_results, screen, request_id, items)

    if background:
        worker = Thread(target=do_fetch, daemon=True)
        screen._worker = worker
        worker.start()
    else:
        do_fetch()
    return request_id


def apply_results(screen, request_id, items):
    with screen.lock:
        if not _is_current(screen, request_id):
            logger.debug("Dropping stale list result (request=%s, latest=%s)", request_id, screen._list_request_id)
            return False
        screen.items = list(items or [])
        screen.state = STATE_LOADED
        screen.error_kind = None
        screen.error_message = None
        screen.notify()
    return False


def apply_error(screen, request_id, exc):
    with screen.lock:
        if not _is_current(screen, request_id):
            logger.debug("Dropping stale list error (request=%s): %s", request_id, exc)
            return False
        kind = "network" if is_network_error(exc) else classify_exception(exc)
        context = "music_list" if is_music(screen.category) else "list"
        logger.warning("List load error [%s] for %s: %s", kind, screen.category, exc)
        screen.items = []
        screen.state = STATE_ERRORED
        screen.error_kind = kind
        screen.error_message = user_message(kind, context)
        screen.notify()
    return False


def on_sort_selected(screen, sort_mode, background=True):
    if sort_mode not in SORT_MODES:
        raise ValueError(f"Unknown sort mode: {sort_mode}")
    if sort_mode not in sort_options(screen.category):
        raise ValueError(f"Sort mode {sort_mode} is not offered for {screen.category}")
    if sort_mode == screen.sort_mode:
        return None
    screen.sort_mode = sort_mode
    return load_list(screen, background=background)


def on_refresh(screen, background=True):
    return load_list(screen, background=background)


def on_retry(screen, background=True):
    return load_list(screen, background=background)


def toggle_view_mode(screen):
    if screen.view_mode == ui_config.VIEW_GRID:
        screen.view_mode = ui_config.VIEW_LIST
    else:
        screen.view_mode = ui_config.VIEW_GRID
    screen.notify()
    return screen.view_mode


def sort_menu(screen):
    """Sort menu entries as (mode, label, checked); empty when the order is fixed."""
    options = sort_options(screen.category)
    if options == (SORT_DEFAULT,):
        return []
    entries = []
    for mode in options:
        if mode == SORT_DEFAULT:
            label = ui_config.DEFAULT_SORT_LABELS.get(screen.category, ui_config.SORT_LABELS["newest"])
        else:
            label = ui_config.SORT_LABELS[mode]
        entries.append((mode, label, mode == screen.sort_mode))
    return entries


def empty_message(screen):
    return ui_config.EMPTY_MESSAGES.get(screen.category, ui_config.EMPTY_FALLBACK)
