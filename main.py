import argparse
import logging
import os
import sys

from actions import auth_actions
from actions import list_actions
from app_logging import setup_logging
from app_settings import apply_env_overrides, load_settings, save_settings
from list_fetch import ListFetchCoordinator
from list_queries import CATEGORIES, SORT_DEFAULT, SORT_MODES
from list_screen import STATE_ERRORED, ListScreen
from supabase_backend import SupabaseBackend
import utils

logger = logging.getLogger(__name__)

DEFAULT_SETTINGS_PATH = os.path.expanduser("~/.config/myna/settings.json")


def build_parser():
    parser = argparse.ArgumentParser(prog="myna-lists", description="Print a Myna content list.")
    parser.add_argument("--category", choices=CATEGORIES, help="content list to load")
    parser.add_argument("--sort", choices=SORT_MODES, help="sort mode (defaults to the last one used)")
    parser.add_argument("--settings", default=DEFAULT_SETTINGS_PATH, help="settings JSON path")
    parser.add_argument("--email", help="sign in before loading")
    parser.add_argument("--password", help="password for --email")
    parser.add_argument("--logout", action="store_true", help="forget the stored session and exit")
    parser.add_argument("--farsi-digits", action="store_true", help="print positions with Farsi digits")
    return parser


def render(screen, out, farsi_digits=False):
    if screen.state == STATE_ERRORED:
        print(screen.error_message, file=out)
        return
    if not screen.items:
        print(list_actions.empty_message(screen), file=out)
        return
    for index, item in enumerate(screen.items, start=1):
        print(utils.format_item_line(index, item, farsi_digits=farsi_digits), file=out)


def main(argv=None, backend=None, out=None):
    setup_logging()
    out = out or sys.stdout
    args = build_parser().parse_args(argv)

    stored = load_settings(args.settings)
    settings = apply_env_overrides(stored)
    if backend is None:
        if not settings["supabase_url"] or not settings["supabase_anon_key"]:
            print("Backend is not configured (MYNA_SUPABASE_URL / MYNA_SUPABASE_ANON_KEY).", file=sys.stderr)
            return 2
        backend = SupabaseBackend.from_settings(settings)

    if args.logout:
        auth_actions.logout(backend)
        return 0

    if args.email:
        ok, message = auth_actions.login(backend, args.email, args.password)
        if not ok:
            print(message, file=sys.stderr)
            return 1
    else:
        auth_actions.restore_session(backend)

    category = args.category or settings["last_category"]
    if category not in CATEGORIES:
        category = CATEGORIES[0]
    sort_mode = args.sort or settings["last_sort"].get(category, SORT_DEFAULT)

    coordinator = ListFetchCoordinator(
        backend,
        progress_limit=settings["progress_limit"],
        list_limit=settings["list_limit"],
    )
    screen = ListScreen(
        coordinator,
        category,
        user_id=backend.current_user_id(),
        view_mode=settings["view_mode"],
    )
    try:
        if sort_mode == SORT_DEFAULT:
            list_actions.load_list(screen, background=False)
        else:
            list_actions.on_sort_selected(screen, sort_mode, background=False)
    except ValueError as e:
        print(str(e), file=sys.stderr)
        return 2

    render(screen, out, farsi_digits=args.farsi_digits)
    if screen.state == STATE_ERRORED:
        return 1

    stored["last_category"] = category
    stored["last_sort"] = dict(stored["last_sort"], **{category: screen.sort_mode})
    try:
        save_settings(args.settings, stored)
    except OSError as e:
        logger.warning("Failed to save settings %s: %s", args.settings, e)
    return 0


if __name__ == "__main__":
    sys.exit(main())
