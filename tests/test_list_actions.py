import threading

import pytest

from actions import list_actions
from app_errors import SchemaError, TransportError
from list_screen import STATE_ERRORED, STATE_IDLE, STATE_LOADED, STATE_LOADING, ListScreen


class FakeCoordinator:
    def __init__(self, results=None, error=None):
        self.results = results if results is not None else []
        self.error = error
        self.calls = []

    def fetch(self, category, sort_mode="default", user_id=None):
        self.calls.append((category, sort_mode, user_id))
        if self.error is not None:
            raise self.error
        return list(self.results)


class GatedCoordinator:
    """Each fetch blocks until the test releases its gate."""

    def __init__(self):
        self.gates = {}
        self.results = {}

    def fetch(self, category, sort_mode="default", user_id=None):
        self.gates[sort_mode].wait(timeout=5)
        return self.results[sort_mode]


def test_screen_starts_idle():
    screen = ListScreen(FakeCoordinator(), "popular")
    assert screen.state == STATE_IDLE
    assert screen.items == []


def test_unknown_category_rejected():
    with pytest.raises(ValueError):
        ListScreen(FakeCoordinator(), "charts")


def test_load_list_inline_reaches_loaded():
    states = []
    screen = ListScreen(FakeCoordinator(results=["a", "b"]), "popular", on_change=lambda s: states.append(s.state))

    request_id = list_actions.load_list(screen, background=False)

    assert request_id == 1
    assert screen.state == STATE_LOADED
    assert screen.items == ["a", "b"]
    assert states == [STATE_LOADING, STATE_LOADED]


def test_empty_result_is_loaded_and_empty():
    screen = ListScreen(FakeCoordinator(results=[]), "podcasts")
    list_actions.load_list(screen, background=False)
    assert screen.is_empty
    assert list_actions.empty_message(screen) == "پادکستی یافت نشد"


def test_connectivity_error_maps_to_internet_message():
    screen = ListScreen(FakeCoordinator(error=TransportError("socket closed")), "new_releases")
    list_actions.load_list(screen, background=False)

    assert screen.state == STATE_ERRORED
    assert screen.error_kind == "network"
    assert screen.error_message == "خطا در اتصال به اینترنت"


def test_backend_error_maps_to_generic_load_message():
    screen = ListScreen(FakeCoordinator(error=SchemaError("42501", "permission denied")), "new_releases")
    list_actions.load_list(screen, background=False)

    assert screen.state == STATE_ERRORED
    assert screen.error_message == "خطا در بارگذاری کتاب‌ها"


def test_music_categories_use_music_error_message():
    screen = ListScreen(FakeCoordinator(error=RuntimeError("unexpected")), "music_popular")
    list_actions.load_list(screen, background=False)
    assert screen.error_message == "خطا در بارگذاری موسیقی"


def test_retry_after_error_recovers():
    coordinator = FakeCoordinator(error=TransportError("timeout"))
    screen = ListScreen(coordinator, "featured")
    list_actions.load_list(screen, background=False)
    assert screen.state == STATE_ERRORED

    coordinator.error = None
    coordinator.results = ["x"]
    list_actions.on_retry(screen, background=False)

    assert screen.state == STATE_LOADED
    assert screen.error_message is None
    assert len(coordinator.calls) == 2


def test_stale_result_does_not_overwrite_newer_state():
    screen = ListScreen(FakeCoordinator(), "popular")
    screen._list_request_id = 1
    first = 1
    screen._list_request_id = 2
    second = 2

    list_actions.apply_results(screen, second, ["B"])
    list_actions.apply_results(screen, first, ["A"])

    assert screen.items == ["B"]
    assert screen.state == STATE_LOADED


def test_stale_error_is_ignored():
    screen = ListScreen(FakeCoordinator(), "popular")
    screen._list_request_id = 2
    list_actions.apply_results(screen, 2, ["B"])
    list_actions.apply_error(screen, 1, TransportError("timeout"))

    assert screen.state == STATE_LOADED
    assert screen.error_message is None


def test_superseded_background_fetch_is_discarded():
    coordinator = GatedCoordinator()
    coordinator.gates = {"default": threading.Event(), "rating": threading.Event()}
    coordinator.results = {"default": ["A"], "rating": ["B"]}
    lock = threading.Lock()

    def dispatch(fn, *args):
        with lock:
            fn(*args)

    screen = ListScreen(coordinator, "popular", dispatch=dispatch)
    list_actions.load_list(screen)
    worker_a = screen._worker
    list_actions.on_sort_selected(screen, "rating")
    worker_b = screen._worker

    # B resolves first, then A.
    coordinator.gates["rating"].set()
    worker_b.join(timeout=5)
    coordinator.gates["default"].set()
    worker_a.join(timeout=5)

    assert screen.items == ["B"]
    assert screen.sort_mode == "rating"
    assert screen.state == STATE_LOADED


class SlowCommitItems:
    """Result whose commit stalls after the current-request check has passed."""

    def __init__(self, values):
        self.values = values
        self.entered = threading.Event()
        self.release = threading.Event()

    def __bool__(self):
        self.entered.set()
        self.release.wait(timeout=5)
        return True

    def __iter__(self):
        return iter(self.values)


def test_newer_request_waits_for_in_flight_commit():
    slow = SlowCommitItems(["A"])
    coordinator = GatedCoordinator()
    coordinator.gates = {"default": threading.Event(), "rating": threading.Event()}
    coordinator.gates["default"].set()
    coordinator.gates["rating"].set()
    coordinator.results = {"default": slow, "rating": ["B"]}

    screen = ListScreen(coordinator, "popular")
    list_actions.load_list(screen)
    worker_a = screen._worker
    assert slow.entered.wait(timeout=5)

    newer = threading.Thread(
        target=list_actions.on_sort_selected,
        args=(screen, "rating"),
        kwargs={"background": False},
    )
    newer.start()
    newer.join(timeout=0.2)
    assert newer.is_alive()

    slow.release.set()
    newer.join(timeout=5)
    worker_a.join(timeout=5)

    assert screen.items == ["B"]
    assert screen.state == STATE_LOADED
    assert screen._list_request_id == 2


def test_backend_timeout_is_not_a_connectivity_error():
    error = SchemaError("57014", "canceling statement due to statement timeout")
    screen = ListScreen(FakeCoordinator(error=error), "popular")
    list_actions.load_list(screen, background=False)

    assert screen.state == STATE_ERRORED
    assert screen.error_kind != "network"
    assert screen.error_message == "خطا در بارگذاری کتاب‌ها"


def test_sort_change_reloads_once():
    coordinator = FakeCoordinator(results=["a"])
    screen = ListScreen(coordinator, "featured")

    assert list_actions.on_sort_selected(screen, "title", background=False) == 1
    assert list_actions.on_sort_selected(screen, "title", background=False) is None
    assert coordinator.calls == [("featured", "title", None)]


def test_sort_change_rejected_for_recency_lists():
    screen = ListScreen(FakeCoordinator(), "recently_played", user_id="u1")
    with pytest.raises(ValueError):
        list_actions.on_sort_selected(screen, "rating", background=False)
    assert list_actions.sort_menu(screen) == []


def test_sort_menu_marks_current_mode():
    screen = ListScreen(FakeCoordinator(), "popular", sort_mode="rating")
    menu = list_actions.sort_menu(screen)
    modes = [m for m, _label, _checked in menu]
    assert modes == ["default", "newest", "rating", "title"]
    assert [m for m, _label, checked in menu if checked] == ["rating"]
    assert menu[0][1] == "محبوب‌ترین"


def test_refresh_passes_user_id():
    coordinator = FakeCoordinator(results=[])
    screen = ListScreen(coordinator, "continue_listening", user_id="u1")
    list_actions.on_refresh(screen, background=False)
    assert coordinator.calls == [("continue_listening", "default", "u1")]


def test_toggle_view_mode():
    screen = ListScreen(FakeCoordinator(), "popular")
    assert list_actions.toggle_view_mode(screen) == "list"
    assert list_actions.toggle_view_mode(screen) == "grid"
