"""Runtime settings shared by the session engine and the UI loop."""

from __future__ import annotations

from dataclasses import dataclass

from nolp.utils.logging import DEFAULT_LOG_FILE


@dataclass(frozen=True)
class Settings:
    """Tunable knobs; the CLI fills these from options and ``NOLP_*`` env vars."""

    # Main loop wait per iteration; also the periodic redraw interval.
    tick_ms: int = 100
    scrollback_capacity: int = 1000
    # Bytes held while a session is paused before the oldest are dropped.
    pause_buffer_limit: int = 64 * 1024
    handoff_queue_size: int = 256
    read_chunk_size: int = 4096
    # RX bytes per scrollback line in the numeric modes.
    rx_line_bytes: int = 16
    # Longest ASCII RX line before it is broken without a newline.
    rx_line_chars: int = 256
    read_timeout_s: float = 0.05
    # Upper bound on how long disconnect() waits for the worker thread.
    join_timeout_s: float = 1.0
    banner_ticks: int = 40
    log_file: str | None = DEFAULT_LOG_FILE

    def __post_init__(self) -> None:
        if self.tick_ms <= 0:
            raise ValueError("tick_ms must be positive")
        if self.scrollback_capacity <= 0:
            raise ValueError("scrollback_capacity must be positive")
        if self.pause_buffer_limit <= 0:
            raise ValueError("pause_buffer_limit must be positive")
        if self.rx_line_bytes <= 0 or self.rx_line_chars <= 0:
            raise ValueError("rx line limits must be positive")
        if self.read_timeout_s <= 0:
            raise ValueError("read_timeout_s must be positive")
