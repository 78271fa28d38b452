#!/usr/bin/env python3
"""
Menu Maker - Enhanced categorized menu system
Terminal front end: one full-screen view drawn from the controller state.
"""

import argparse
import logging
from pathlib import Path
from typing import Callable, List, Optional

from rich.text import Text
from textual import events
from textual.app import App, ComposeResult, SuspendNotSupported
from textual.binding import Binding
from textual.widget import Widget

from menu_maker import __version__
from menu_maker.controller import MenuController, PendingCommand
from menu_maker.forms import SettingsField
from menu_maker.render import render_frame
from menu_maker.store import AppPaths


logger = logging.getLogger(__name__)

REFRESH_INTERVAL = 0.2
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


class MenuView(Widget, can_focus=True):
    """Full-screen widget that forwards input to the controller and draws its frame.

    Main-view keys are bindings. While a form or popup is open every key
    goes straight to the controller instead, so typed text never triggers
    a binding.
    """

    BINDINGS = [
        Binding("q,escape", "exit_app", "Exit", show=True),
        Binding("e", "edit_item", "Edit", show=True),
        Binding("enter", "execute_item", "Execute", show=True),
        Binding("n", "new_item", "New Item", show=True),
        Binding("d", "delete_item", "Delete", show=True),
        Binding("s", "open_settings", "Settings", show=True),
        Binding("i", "show_info", "Info", show=True),
        Binding("r", "reload_menu", "Reload", show=True),
        Binding("space", "toggle_category", "Toggle Category", show=True),
        Binding("up,k", "cursor_up", "Up", show=False),
        Binding("down,j", "cursor_down", "Down", show=False),
        Binding("t", "open_theme", "Theme", show=False),
        Binding("ctrl+t", "open_settings", "Title", show=False),
        Binding("ctrl+b", "scan_bin_directory", "Scan ./import", show=True),
    ]

    DEFAULT_CSS = """
    MenuView {
        width: 100%;
        height: 100%;
    }
    """

    def __init__(self, controller: MenuController):
        super().__init__(id="menu-view")
        self.controller = controller

    def render(self) -> Text:
        width, height = self.size.width, self.size.height
        self.controller.resize(width, height)
        return render_frame(self.controller, width, height)

    def on_key(self, event: events.Key) -> None:
        if self.controller.popup is None:
            # Let the key bubble to the app, which runs the bindings above.
            return
        event.stop()
        event.prevent_default()
        self.controller.handle_key(event)
        self.app.process_controller()

    def on_mouse_down(self, event: events.MouseDown) -> None:
        if event.button != 1:
            return
        event.stop()
        self.controller.handle_click(event.x, event.y)
        self.app.process_controller()

    def on_resize(self, event: events.Resize) -> None:
        self.controller.resize(event.size.width, event.size.height)
        self.refresh()

    def _run(self, operation: Callable[[], None]) -> None:
        operation()
        self.app.process_controller()

    def action_exit_app(self) -> None:
        self.controller.should_quit = True
        self.app.process_controller()

    def action_cursor_up(self) -> None:
        self._run(self.controller.move_up)

    def action_cursor_down(self) -> None:
        self._run(self.controller.move_down)

    def action_execute_item(self) -> None:
        """Run the selected item, or toggle the selected category."""
        self._run(self.controller.activate)

    def action_toggle_category(self) -> None:
        self._run(self.controller.toggle_category)

    def action_edit_item(self) -> None:
        self._run(self.controller.edit_current)

    def action_new_item(self) -> None:
        self._run(lambda: self.controller.open_item_form(None))

    def action_delete_item(self) -> None:
        self._run(self.controller.delete_selected_item)

    def action_show_info(self) -> None:
        self._run(self.controller.show_info)

    def action_reload_menu(self) -> None:
        self._run(self.controller.reload_from_disk)

    def action_open_settings(self) -> None:
        self._run(lambda: self.controller.open_settings(SettingsField.TITLE))

    def action_open_theme(self) -> None:
        self._run(lambda: self.controller.open_settings(SettingsField.THEME))

    def action_scan_bin_directory(self) -> None:
        """Import new executables from the import directory."""
        self._run(self.controller.run_import_scan)


class MenuMaker(App):
    """Main application class."""

    ENABLE_COMMAND_PALETTE = False

    CSS = """
    Screen {
        overflow: hidden;
    }
    """

    def __init__(self, controller: MenuController):
        super().__init__()
        self.controller = controller

    def compose(self) -> ComposeResult:
        yield MenuView(self.controller)

    def on_mount(self) -> None:
        """Focus the menu and keep the clock-driven redraw going."""
        self.title = self.controller.title
        self.query_one(MenuView).focus()
        self.set_interval(REFRESH_INTERVAL, self.refresh_view)

    def refresh_view(self) -> None:
        self.query_one(MenuView).refresh()

    def process_controller(self) -> None:
        """Act on what the last input asked for: quitting or running a command."""
        if self.controller.should_quit:
            self.action_exit_app()
            return
        pending = self.controller.take_pending_command()
        if pending is not None:
            self.run_external_command(pending)
        self.title = self.controller.title
        self.refresh_view()

    def run_external_command(self, pending: PendingCommand) -> None:
        """Run a command with the terminal handed back, then redraw."""
        logger.info("Running %r (%s)", pending.label, pending.command)
        try:
            with self.suspend():
                self.controller.run_pending(pending)
        except SuspendNotSupported as e:
            logger.error("Cannot suspend to run %r: %s", pending.command, e)
            self.controller.set_status("Commands cannot run in this terminal")
        self.refresh(layout=True)

    def action_exit_app(self) -> None:
        """Exit the application."""
        # Save current theme before exiting
        self.controller.save_theme()
        self.exit()


def configure_logging(log_file: Path, level: str) -> None:
    """Send log records to ``log_file``; the terminal belongs to the UI."""
    logging.basicConfig(
        filename=str(log_file),
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
    )


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="menu-maker",
        description="Categorized terminal menu for launching shell commands.",
    )
    parser.add_argument(
        "--config-dir",
        type=Path,
        default=None,
        help="Configuration directory (default: $MENU_MAKER_HOME or ~/.local/menu-maker)",
    )
    parser.add_argument(
        "--import-dir",
        type=Path,
        default=Path("./import"),
        help="Directory scanned for new executables (default: ./import)",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level for the log file (default: INFO)",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    args = parse_args(argv)
    paths = AppPaths.resolve(args.config_dir)
    paths.ensure()
    configure_logging(paths.log_file, args.log_level)
    logger.info("Starting Menu Maker %s with config in %s", __version__, paths.config_dir)

    controller = MenuController(paths, import_dir=args.import_dir)
    app = MenuMaker(controller)
    app.run()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
