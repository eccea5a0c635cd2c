"""Screen and selection state.

The active screen is one of four view dataclasses, each holding only its own
local state. Code that needs to branch on the screen matches on the view type.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from enum import StrEnum

from nolp.core.discovery import list_devices
from nolp.models.device import DeviceDescriptor
from nolp.ui.help import HELP_LINES
from nolp.ui.menu import MenuForm
from nolp.utils.logging import get_logger

logger = get_logger(__name__)


class Screen(StrEnum):
    MENU = "menu"
    DEVICE_LIST = "device_list"
    HELP = "help"
    TERMINAL = "terminal"


@dataclass
class MenuView:
    form: MenuForm


@dataclass
class DeviceListView:
    devices: list[DeviceDescriptor] = field(default_factory=list)
    selected: int = 0

    @property
    def selected_device(self) -> DeviceDescriptor | None:
        if not self.devices:
            return None
        return self.devices[self.selected]


@dataclass
class HelpView:
    caller: Screen = Screen.MENU
    offset: int = 0


@dataclass
class TerminalView:
    # Pending text in the numeric modes, sent on Enter.
    input_line: str = ""
    input_error: str | None = None


View = MenuView | DeviceListView | HelpView | TerminalView

_SCREEN_OF: dict[type, Screen] = {
    MenuView: Screen.MENU,
    DeviceListView: Screen.DEVICE_LIST,
    HelpView: Screen.HELP,
    TerminalView: Screen.TERMINAL,
}


def screen_of(view: View) -> Screen:
    return _SCREEN_OF[type(view)]


def _clamp(value: int, count: int) -> int:
    return min(max(0, value), max(0, count - 1))


class ViewNavigator:
    """Owns the active view and moves between screens.

    The menu form outlives the Menu view so typed values survive a trip to
    Help or the device list.
    """

    def __init__(
        self,
        device_source: Callable[[], list[DeviceDescriptor]] = list_devices,
        form: MenuForm | None = None,
    ) -> None:
        self._device_source = device_source
        self._form = form or MenuForm()
        self._view: View = MenuView(self._form)

    @property
    def view(self) -> View:
        return self._view

    @property
    def screen(self) -> Screen:
        return screen_of(self._view)

    @property
    def form(self) -> MenuForm:
        return self._form

    def navigate(self, target: Screen) -> View:
        """Switch to *target*. The device list is re-enumerated on every entry."""
        previous = self.screen
        match target:
            case Screen.MENU:
                self._view = MenuView(self._form)
            case Screen.DEVICE_LIST:
                self._view = DeviceListView(devices=list(self._device_source()))
            case Screen.HELP:
                caller = previous if previous != Screen.HELP else self._caller()
                self._view = HelpView(caller=caller)
            case Screen.TERMINAL:
                if not isinstance(self._view, TerminalView):
                    self._view = TerminalView()
        logger.debug("navigate", source=str(previous), target=str(target))
        return self._view

    def move(self, delta: int) -> None:
        """Move the selection of a list-bearing screen, clamped at both ends."""
        match self._view:
            case MenuView(form=form):
                form.select(delta)
            case DeviceListView() as view:
                view.selected = _clamp(view.selected + delta, len(view.devices))
            case HelpView() as view:
                view.offset = _clamp(view.offset + delta, len(HELP_LINES))
            case TerminalView():
                # Terminal movement scrolls the session scrollback instead.
                pass

    def choose_device(self) -> None:
        """Copy the selected device into the menu form and return to the menu."""
        if isinstance(self._view, DeviceListView):
            device = self._view.selected_device
            if device is not None:
                self._form.set_port(device.device)
        self.navigate(Screen.MENU)

    def close_help(self) -> None:
        """Return to the screen Help was opened from."""
        if isinstance(self._view, HelpView):
            self.navigate(self._view.caller)

    def _caller(self) -> Screen:
        if isinstance(self._view, HelpView):
            return self._view.caller
        return Screen.MENU
