import threading

from list_queries import SORT_DEFAULT, category_entry
import ui_config

STATE_IDLE = "idle"
STATE_LOADING = "loading"
STATE_LOADED = "loaded"
STATE_ERRORED = "errored"


def _run_inline(fn, *args):
    fn(*args)
    return 0


class ListScreen:
    """
    Visible state of one list screen instance.

    ``dispatch(fn, *args)`` schedules ``fn`` on the thread that owns the
    screen (GLib.idle_add in a GTK shell); the default runs it immediately.
    ``on_change(screen)`` is called after every visible state change.
    ``lock`` serialises request-id bumps with result commits, whichever
    thread ``dispatch`` runs them on.
    """

    def __init__(
        self,
        coordinator,
        category,
        sort_mode=SORT_DEFAULT,
        user_id=None,
        dispatch=None,
        on_change=None,
        view_mode=ui_config.VIEW_GRID,
    ):
        category_entry(category)
        self.coordinator = coordinator
        self.category = category
        self.sort_mode = sort_mode
        self.user_id = user_id
        self.dispatch = dispatch or _run_inline
        self.on_change = on_change
        self.view_mode = view_mode
        self.state = STATE_IDLE
        self.items = []
        self.error_kind = None
        self.error_message = None
        self._list_request_id = 0
        self._worker = None
        self.lock = threading.RLock()

    @property
    def is_loading(self):
        return self.state == STATE_LOADING

    @property
    def is_empty(self):
        return self.state == STATE_LOADED and not self.items

    def notify(self):
        if self.on_change is not None:
            self.on_change(self)
