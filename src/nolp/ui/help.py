"""Help screen content: keymap and menu field reference."""

from __future__ import annotations

from nolp.ui.keys import (
    DEVICE_LIST_CHAR,
    DISCONNECT_CHAR,
    HELP_CHAR,
    MENU_CHAR,
    MODE_CHAR,
    NEXT_ELEMENT_CHAR,
    PAUSE_CHAR,
    PREVIOUS_ELEMENT_CHAR,
    QUIT_CHAR,
    RESUME_CHAR,
    TERMINAL_CHAR,
)

# (left, right) pairs; a right of None marks a section heading, ("", None) a gap.
HELP_LINES: tuple[tuple[str, str | None], ...] = (
    ("Keymap (Views)", None),
    ("", None),
    (f"ctrl+{MENU_CHAR}", "Displays menu"),
    (f"ctrl+{DEVICE_LIST_CHAR}", "Displays device list"),
    (f"ctrl+{HELP_CHAR}", "Displays help"),
    (f"ctrl+{TERMINAL_CHAR}", "Displays terminal"),
    (f"ctrl+{QUIT_CHAR}", "Quits application"),
    ("", None),
    ("Keymap (Movement)", None),
    ("", None),
    (PREVIOUS_ELEMENT_CHAR, "Previous/scroll up"),
    (NEXT_ELEMENT_CHAR, "Next/scroll down"),
    ("enter", "Select/send"),
    ("", None),
    ("Keymap (Terminal)", None),
    ("", None),
    (f"ctrl+{PAUSE_CHAR}", "Pause display"),
    (f"ctrl+{RESUME_CHAR}", "Resume display"),
    (f"ctrl+{DISCONNECT_CHAR}", "Disconnect"),
    (f"ctrl+{MODE_CHAR}", "Next encoding mode"),
    ("", None),
    ("Menu Input - Expected Value", None),
    ("", None),
    ("Port", "Port name/path"),
    ("Baudrate", "Serialport baudrate"),
    ("Data bits", "5 - 8"),
    ("Stop bits", "1|2"),
    ("Parity", "None|Even|Odd"),
    ("Mode", "Ascii|Decimal|Hex|Octal"),
    ("", None),
    ("Keys bound above cannot be sent to the device.", None),
)
