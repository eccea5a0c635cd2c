"""Pure projection of application state into a grid of styled cells.

Nothing here mutates the views, the session or the scrollback; the terminal
adapter paints the returned ``Frame`` in one pass.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum

from nolp.core.scrollback import Direction, ScrollbackLine
from nolp.core.session import PortSession, SessionState
from nolp.exceptions import ConnectionError
from nolp.models.port import EncodingMode
from nolp.ui.help import HELP_LINES
from nolp.ui.keys import HELP_CHAR, MENU_CHAR, QUIT_CHAR
from nolp.ui.menu import MenuForm
from nolp.ui.navigator import (
    DeviceListView,
    HelpView,
    MenuView,
    TerminalView,
    View,
)

TITLE = " NOLP "
INPUT_WIDTH = 18
GAP_WIDTH = 10
HELP_WIDTH = 24
# Border, header, input box and footer rows around the scrollback viewport.
TERMINAL_CHROME_ROWS = 7


class Style(StrEnum):
    NORMAL = "normal"
    BORDER = "border"
    TITLE = "title"
    SELECTED = "selected"
    PLACEHOLDER = "placeholder"
    INVALID = "invalid"
    RX = "rx"
    TX = "tx"
    STATUS = "status"


@dataclass(frozen=True)
class Banner:
    """Transient footer message."""
    text: str
    is_error: bool = False


@dataclass
class Frame:
    """A width x height grid of (character, style) cells."""
    width: int
    height: int
    cells: list[list[tuple[str, Style]]] = field(default_factory=list)

    def __post_init__(self) -> None:
        if not self.cells:
            self.cells = [[(" ", Style.NORMAL)] * self.width for _ in range(self.height)]

    def put(self, y: int, x: int, text: str, style: Style = Style.NORMAL) -> None:
        """Write *text* at (y, x), clipped to the frame."""
        if y < 0 or y >= self.height:
            return
        row = self.cells[y]
        for offset, ch in enumerate(text):
            col = x + offset
            if col >= self.width:
                break
            if col >= 0:
                row[col] = (ch if ch.isprintable() else "?", style)

    def put_centered(self, y: int, left: int, right: int, text: str, style: Style = Style.NORMAL) -> None:
        span = right - left
        text = text[:max(0, span)]
        self.put(y, left + max(0, (span - len(text)) // 2), text, style)

    def row_text(self, y: int) -> str:
        return "".join(ch for ch, _ in self.cells[y])

    def runs(self, y: int) -> list[tuple[int, str, Style]]:
        """Consecutive same-style segments of row *y* as (x, text, style)."""
        result: list[tuple[int, str, Style]] = []
        start = 0
        row = self.cells[y]
        for x in range(1, len(row) + 1):
            if x == len(row) or row[x][1] != row[start][1]:
                result.append((start, "".join(ch for ch, _ in row[start:x]), row[start][1]))
                start = x
        return result

    def text(self) -> str:
        return "\n".join(self.row_text(y) for y in range(self.height))


@dataclass(frozen=True)
class _Area:
    top: int
    left: int
    bottom: int  # exclusive
    right: int  # exclusive

    @property
    def height(self) -> int:
        return max(0, self.bottom - self.top)

    @property
    def width(self) -> int:
        return max(0, self.right - self.left)


def terminal_viewport_height(height: int) -> int:
    """Scrollback rows visible in the Terminal screen for a terminal *height*."""
    return max(1, height - TERMINAL_CHROME_ROWS)


def render(
    view: View,
    session: PortSession | None,
    banner: Banner | None,
    width: int,
    height: int,
) -> Frame:
    """Build the complete frame for the current state."""
    frame = Frame(width, height)
    if width < 4 or height < 4:
        frame.put(0, 0, "NOLP"[:width], Style.TITLE)
        return frame

    _draw_border(frame)
    body = _Area(top=1, left=1, bottom=height - 2, right=width - 1)

    match view:
        case MenuView(form=form):
            _render_menu(frame, body, form)
        case DeviceListView():
            _render_device_list(frame, body, view)
        case HelpView():
            _render_help(frame, body, view)
        case TerminalView():
            _render_terminal(frame, body, view, session)

    _render_footer(frame, height - 2, width, banner)
    return frame


# --- Chrome ---

def _draw_border(frame: Frame) -> None:
    w, h = frame.width, frame.height
    frame.put(0, 0, "╭" + "─" * (w - 2) + "╮", Style.BORDER)
    for y in range(1, h - 1):
        frame.put(y, 0, "│", Style.BORDER)
        frame.put(y, w - 1, "│", Style.BORDER)
    frame.put(h - 1, 0, "╰" + "─" * (w - 2) + "╯", Style.BORDER)
    frame.put_centered(0, 1, w - 1, TITLE, Style.TITLE)


def _render_footer(frame: Frame, y: int, width: int, banner: Banner | None) -> None:
    if banner is not None:
        style = Style.INVALID if banner.is_error else Style.STATUS
        text = f" {banner.text} "
    else:
        style = Style.PLACEHOLDER
        text = f" Help (ctrl+{HELP_CHAR}) | Quit (ctrl+{QUIT_CHAR}) "
    frame.put_centered(y, 1, width - 1, text, style)


def _render_title(frame: Frame, area: _Area, title: str) -> None:
    frame.put_centered(area.top, area.left, area.right, title, Style.TITLE)


def _visible_start(selected: int, count: int, rows: int) -> int:
    """First list row to draw so that *selected* stays on screen."""
    if rows <= 0 or count <= rows:
        return 0
    return min(max(0, selected - rows + 1), count - rows)


# --- Menu ---

def _field_value(field_value: str, placeholder: str) -> tuple[str, Style]:
    if field_value:
        return field_value[-INPUT_WIDTH:], Style.NORMAL
    return placeholder, Style.PLACEHOLDER


def _render_menu(frame: Frame, area: _Area, form: MenuForm) -> None:
    _render_title(frame, area, "Menu")
    content = _Area(area.top + 2, area.left, area.bottom, area.right)
    split = content.width >= INPUT_WIDTH * 2 + GAP_WIDTH
    per_row = 2 if split else 1

    # Each row of fields is three lines: title, value, underline.
    field_rows = [
        range(i, min(i + per_row, len(form.fields)))
        for i in range(0, len(form.fields), per_row)
    ]
    lines: list[list[tuple[int, str, Style]]] = []
    row_width = per_row * INPUT_WIDTH + (per_row - 1) * GAP_WIDTH
    left = content.left + max(0, (content.width - row_width) // 2)
    selected_line = 0

    for indices in field_rows:
        title_row: list[tuple[int, str, Style]] = []
        value_row: list[tuple[int, str, Style]] = []
        under_row: list[tuple[int, str, Style]] = []
        for col, index in enumerate(indices):
            f = form.fields[index]
            x = left + col * (INPUT_WIDTH + GAP_WIDTH)
            frame_style = Style.NORMAL
            if f.invalid:
                frame_style = Style.INVALID
            if index == form.selected:
                frame_style = Style.SELECTED
                # Keep the whole field, underline included, on screen.
                selected_line = len(lines) + 2
            text, value_style = _field_value(f.value, f.placeholder)
            title_row.append((x, f.title, frame_style))
            value_row.append((x, text, value_style))
            under_row.append((x, "▔" * INPUT_WIDTH, frame_style))
        lines.extend([title_row, value_row, under_row])

    cancel_style = Style.SELECTED if form.selected == form.cancel_index else Style.NORMAL
    start_style = Style.SELECTED if form.selected == form.start_index else Style.NORMAL
    if split:
        x = content.left + max(0, (content.width - (len("Cancel") + GAP_WIDTH + len("Start"))) // 2)
        lines.append([(x, "Cancel", cancel_style), (x + len("Cancel") + GAP_WIDTH, "Start", start_style)])
        if form.selected >= form.cancel_index:
            selected_line = len(lines) - 1
    else:
        mid = content.left + content.width // 2
        lines.append([(mid - len("Cancel") // 2, "Cancel", cancel_style)])
        if form.selected == form.cancel_index:
            selected_line = len(lines) - 1
        lines.append([(mid - len("Start") // 2, "Start", start_style)])
        if form.selected == form.start_index:
            selected_line = len(lines) - 1

    start = _visible_start(selected_line, len(lines), content.height)
    for row_offset, line in enumerate(lines[start:start + content.height]):
        for x, text, style in line:
            frame.put(content.top + row_offset, x, text[:content.right - x], style)


# --- Device list ---

def _render_device_list(frame: Frame, area: _Area, view: DeviceListView) -> None:
    _render_title(frame, area, "Device List")
    content = _Area(area.top + 2, area.left, area.bottom, area.right)
    if not view.devices:
        frame.put_centered(content.top, content.left, content.right, "No devices available", Style.INVALID)
        return
    start = _visible_start(view.selected, len(view.devices), content.height)
    for row, index in enumerate(range(start, min(len(view.devices), start + content.height))):
        style = Style.SELECTED if index == view.selected else Style.NORMAL
        frame.put_centered(content.top + row, content.left, content.right, view.devices[index].label, style)


# --- Help ---

def _render_help(frame: Frame, area: _Area, view: HelpView) -> None:
    _render_title(frame, area, "Help")
    content = _Area(area.top + 2, area.left, area.bottom, area.right)
    block_width = min(content.width, HELP_WIDTH + 12)
    left = content.left + max(0, (content.width - block_width) // 2)
    for row, (label, description) in enumerate(HELP_LINES[view.offset:view.offset + content.height]):
        y = content.top + row
        if description is None:
            frame.put_centered(y, content.left, content.right, label, Style.TITLE if label else Style.NORMAL)
            continue
        frame.put(y, left, label)
        frame.put(y, left + block_width - len(description), description, Style.PLACEHOLDER)


# --- Terminal ---

def _line_prefix(line: ScrollbackLine) -> str:
    return "TX " if line.direction == Direction.TX else "RX "


def _render_terminal(
    frame: Frame,
    area: _Area,
    view: TerminalView,
    session: PortSession | None,
) -> None:
    if session is None:
        frame.put_centered(
            area.top + area.height // 2,
            area.left,
            area.right,
            f"No active session (ctrl+{MENU_CHAR} to open the menu)",
            Style.PLACEHOLDER,
        )
        return

    if isinstance(session.last_error, ConnectionError) and session.state == SessionState.DISCONNECTED:
        y = area.top + area.height // 2
        frame.put_centered(y, area.left, area.right, f"There was an error connecting to {session.port}", Style.INVALID)
        if session.last_error is not None:
            frame.put_centered(y + 1, area.left, area.right, str(session.last_error), Style.PLACEHOLDER)
        return

    _render_session_header(frame, area, session)

    viewport = _Area(area.top + 1, area.left, area.bottom - 3, area.right)
    for row, line in enumerate(session.scrollback.window()[:viewport.height]):
        style = Style.TX if line.direction == Direction.TX else Style.RX
        frame.put(viewport.top + row, viewport.left + 1, _line_prefix(line), Style.PLACEHOLDER)
        frame.put(viewport.top + row, viewport.left + 4, line.text[:max(0, viewport.width - 5)], style)

    _render_input_box(frame, _Area(area.bottom - 3, area.left, area.bottom, area.right), view, session)


def _render_session_header(frame: Frame, area: _Area, session: PortSession) -> None:
    status = session.status
    header = f" {session.parameters.summary}"
    if session.mode != session.parameters.mode:
        header = f" {session.port} {session.mode.label}"
    frame.put(area.top, area.left, header, Style.TITLE)

    if status == SessionState.PAUSED:
        state_text = f"PAUSED {session.buffered_bytes} buffered"
        if session.dropped_bytes:
            state_text += f", {session.dropped_bytes} dropped"
        state_style = Style.PLACEHOLDER
    elif status == SessionState.ERROR:
        state_text, state_style = "ERROR", Style.INVALID
    else:
        state_text, state_style = status.value.upper(), Style.STATUS

    offset = session.scrollback.offset
    if offset:
        state_text = f"-{offset} | {state_text}"
    frame.put(area.top, area.right - len(state_text) - 1, state_text, state_style)


def _render_input_box(frame: Frame, box: _Area, view: TerminalView, session: PortSession) -> None:
    if box.width < 2:
        return
    title = " Input "
    title_style = Style.BORDER
    if view.input_error:
        title = f" Input: {view.input_error} "
        title_style = Style.INVALID
    frame.put(box.top, box.left, "╭" + "─" * (box.width - 2) + "╮", Style.BORDER)
    frame.put(box.top, box.left + 1, title[:box.width - 2], title_style)
    frame.put(box.top + 1, box.left, "│", Style.BORDER)
    frame.put(box.top + 1, box.right - 1, "│", Style.BORDER)
    frame.put(box.top + 2, box.left, "╰" + "─" * (box.width - 2) + "╯", Style.BORDER)

    if session.state != SessionState.CONNECTED:
        text, style = "...", Style.PLACEHOLDER
    elif session.mode == EncodingMode.ASCII:
        text, style = "... (keys are sent as typed)", Style.PLACEHOLDER
    elif view.input_line:
        text, style = view.input_line, Style.SELECTED
    else:
        text, style = f"... ({session.mode.label} values, enter to send)", Style.PLACEHOLDER
    inner = box.width - 4
    frame.put(box.top + 1, box.left + 2, text[-inner:] if inner > 0 else "", style)
