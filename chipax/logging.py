"""Console logging utilities for the chipax interpreter.

This module provides a small levelled console logger, an emulator-specific
logger that knows how to report ROM loads, faults and register dumps, a
performance counter reporting the achieved CPU and frame rates, and real-time
tqdm progress bars for jitted ``jax.lax.scan`` loops using io_callback.
"""

import time
import sys
from typing import Callable, Optional, Sequence, Tuple

import jax
from jax.experimental import io_callback

from tqdm import tqdm


class ConsoleLogger:
    """Flexible console logger with levels, timestamps and colors."""

    def __init__(
        self,
        name: str = "chipax",
        log_level: str = "INFO",
        use_colors: bool = True,
        show_timestamps: bool = True,
    ):
        self.name = name
        self.log_level = log_level.upper()
        self.use_colors = (
            use_colors and hasattr(sys.stdout, "isatty") and sys.stdout.isatty()
        )
        self.show_timestamps = show_timestamps
        self.start_time = time.time()

        self.colors = (
            {
                "DEBUG": "\033[36m",
                "INFO": "\033[32m",
                "WARNING": "\033[33m",
                "ERROR": "\033[31m",
                "CRITICAL": "\033[35m",
                "RESET": "\033[0m"
            }
            if self.use_colors
            else {
                k: ""
                for k in ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL", "RESET"]
            }
        )

        self.level_order = {
            "DEBUG": 0,
            "INFO": 1,
            "WARNING": 2,
            "ERROR": 3,
            "CRITICAL": 4,
        }

    def _should_log(self, level: str) -> bool:
        """Check if message should be logged based on current log level."""
        return self.level_order.get(level.upper(), 1) >= self.level_order.get(
            self.log_level, 1
        )

    def _format_message(self, level: str, message: str) -> str:
        """Format log message with timestamp, level, and colors."""
        timestamp = (
            f"[{time.time() - self.start_time:8.2f}s]" if self.show_timestamps else ""
        )
        level_str = f"[{level:>8s}]"
        name_str = f"[{self.name}]"

        if self.use_colors:
            color = self.colors.get(level.upper(), "")
            reset = self.colors["RESET"]
            level_str = f"{color}{level_str}{reset}"

        return f"{timestamp}{level_str}{name_str} {message}"

    def log(self, level: str, message: str):
        """Log a message at the specified level."""
        if self._should_log(level):
            formatted = self._format_message(level, message)
            print(formatted, flush=True)

    def debug(self, message: str):
        """Log debug message."""
        self.log("DEBUG", message)

    def info(self, message: str):
        """Log info message."""
        self.log("INFO", message)

    def warning(self, message: str):
        """Log warning message."""
        self.log("WARNING", message)

    def error(self, message: str):
        """Log error message."""
        self.log("ERROR", message)

    def critical(self, message: str):
        """Log critical message."""
        self.log("CRITICAL", message)


class EmulatorLogger(ConsoleLogger):
    """Logger with helpers for the interpreter host."""

    def __init__(self, name: str = "chipax", **kwargs):
        super().__init__(name, **kwargs)

    def log_load(self, source: str, size: int, capacity: int):
        """Log a program load, warning when the image was truncated."""
        if size > capacity:
            self.warning(f"Loaded {source}: {size} bytes, truncated to {capacity}")
        else:
            self.info(f"Loaded {source} ({size} bytes)")

    def log_fault(self, error: Exception):
        self.error(f"Interpreter halted: {error}")

    def log_perf(self, cpu_hz: float, fps: float):
        self.info(f"CPU = {cpu_hz:.0f}Hz, FPS = {fps:.1f}Hz")

    def log_registers(self, registers: Sequence[int], pc: int, index: int, sp: int,
                      delay_timer: int, sound_timer: int):
        """Log the register file four registers per line."""
        self.info(f"PC: 0x{pc:03X}  I: 0x{index:03X}  SP: {sp}  DT: {delay_timer}  ST: {sound_timer}")
        for row in range(0, len(registers), 4):
            cells = " ".join(f"V{r:X}:{int(registers[r]):02X}" for r in range(row, row + 4))
            self.info(f"  {cells}")


class PerfCounter:
    """Counts executed cycles and frames and reports their rates every ``interval`` seconds."""

    def __init__(self, logger: Optional[EmulatorLogger] = None, interval: float = 3.0,
                 clock: Callable[[], float] = time.monotonic):
        self.logger = logger
        self.interval = interval
        self.clock = clock
        self.cycles = 0
        self.frames = 0
        self.total_cycles = 0
        self.total_frames = 0
        self._window_start = clock()

    def count_cycles(self, n: int = 1):
        self.cycles += n
        self.total_cycles += n
        self._maybe_report()

    def count_frame(self, n: int = 1):
        self.frames += n
        self.total_frames += n
        self._maybe_report()

    def rates(self) -> Tuple[float, float]:
        """Cycles and frames per second over the current window."""
        elapsed = max(self.clock() - self._window_start, 1e-9)
        return self.cycles / elapsed, self.frames / elapsed

    def _maybe_report(self):
        if self.interval <= 0 or self.clock() - self._window_start < self.interval:
            return
        cpu_hz, fps = self.rates()
        if self.logger is not None:
            self.logger.log_perf(cpu_hz, fps)
        self.cycles = 0
        self.frames = 0
        self._window_start = self.clock()


def build_tqdm_progress_bar(
    n: int,
    print_rate: Optional[int] = None,
    desc: str = None,
    **kwargs,
) -> Tuple[Callable, Callable]:
    """Build real-time tqdm progress bar for JAX computations."""
    if desc is None:
        desc = f"Running ({n:,} frames)"

    for kwarg in ("total", "mininterval", "maxinterval", "miniters"):
        kwargs.pop(kwarg, None)

    tqdm_bars = {}

    if print_rate is None:
        print_rate = max(1, min(n // 20, 50))
    else:
        print_rate = max(1, min(print_rate, n))

    # The periodic updates stop short of the last iteration, which adds whatever is left
    last_periodic = max(0, ((n - 2) // print_rate) * print_rate)
    final_update = n - last_periodic

    def _define_tqdm():
        tqdm_bars[0] = tqdm(total=n, desc=desc, unit="frame", **kwargs)

    def _update_tqdm(steps):
        if 0 in tqdm_bars:
            tqdm_bars[0].update(int(steps))

    def _close_tqdm():
        if 0 in tqdm_bars:
            tqdm_bars[0].close()

    def _update_progress_bar(iter_num):
        _ = jax.lax.cond(
            iter_num == 0,
            lambda _: io_callback(_define_tqdm, None, ordered=True),
            lambda _: None,
            operand=None,
        )

        _ = jax.lax.cond(
            (iter_num % print_rate == 0) & (iter_num > 0) & (iter_num < n - 1),
            lambda _: io_callback(_update_tqdm, None, print_rate, ordered=True),
            lambda _: None,
            operand=None,
        )

        _ = jax.lax.cond(
            iter_num == n - 1,
            lambda _: io_callback(_update_tqdm, None, final_update, ordered=True),
            lambda _: None,
            operand=None,
        )

    def close_progress_bar(result, iter_num):
        _ = jax.lax.cond(
            iter_num == n - 1,
            lambda _: io_callback(_close_tqdm, None, ordered=True),
            lambda _: None,
            operand=None,
        )
        return result

    return _update_progress_bar, close_progress_bar


def scan_with_progress(
    n: int,
    print_rate: Optional[int] = None,
    desc: str = None,
    **tqdm_kwargs,
) -> Callable:
    """Decorator to add real-time progress bar to JAX scan operations.

    The scanned sequence must be (or start with) the iteration counter.
    """
    _update_progress_bar, close_progress_bar = build_tqdm_progress_bar(
        n, print_rate, desc, **tqdm_kwargs
    )

    def _scan_progress_decorator(func):
        def wrapper_with_progress(carry, x):
            if isinstance(x, tuple):
                iter_num = x[0]
            else:
                iter_num = x

            _update_progress_bar(iter_num)

            result = func(carry, x)

            return close_progress_bar(result, iter_num)

        return wrapper_with_progress

    return _scan_progress_decorator
