"""Host-side driver around the functional CHIP-8 core.

:class:`Chip8Machine` owns one :class:`~chipax.state.EmulatorState`, advances it
with jitted step/frame functions, turns recorded faults into exceptions and
hands out numpy snapshots of registers, memory and the framebuffer to display
or debugging code.
"""

import dataclasses
from functools import partial
from typing import Optional, Sequence

import jax
import jax.numpy as jnp
import numpy as np

from chipax.constants import PROGRAM_START, MAX_ROM_SIZE, MEMORY_SIZE, TIMER_FREQUENCY
from chipax.decode import disassemble
from chipax.emulator import (
    step, tick, fetch, run_frame, load_rom, set_keypad, press_key, release_key, is_sound_on
)
from chipax.errors import fault_error
from chipax.logging import EmulatorLogger, PerfCounter, scan_with_progress
from chipax.state import EmulatorState, Fault, create_state

_jit_step = jax.jit(step)
_jit_tick = jax.jit(tick)


def _frame_body(cycles: int):
    def frame(state, _):
        return run_frame(state, cycles), None
    return frame


@partial(jax.jit, static_argnums=(1, 2))
def _run_frames(state: EmulatorState, n: int, cycles: int) -> EmulatorState:
    state, _ = jax.lax.scan(_frame_body(cycles), state, jnp.arange(n))
    return state


def _run_frames_with_progress(state: EmulatorState, n: int, cycles: int) -> EmulatorState:
    # Each call owns a fresh tqdm bar, so this path is traced per call
    frame = scan_with_progress(n, desc=f"Running ({n:,} frames)")(_frame_body(cycles))

    @jax.jit
    def run(state):
        state, _ = jax.lax.scan(frame, state, jnp.arange(n))
        return state

    return run(state)


@dataclasses.dataclass
class MachineConfig:
    """Settings for :class:`Chip8Machine`.

    Attributes:
        cycles_per_frame: Instructions executed per 60 Hz frame (10 gives ~600 Hz)
        modern_mode: Modern shift and register-block semantics; False selects COSMAC VIP quirks
        strict_load: Raise instead of truncating when a ROM does not fit in memory
        seed: Seed of the random number generator used by RND
        log_level: Minimum level printed by the console logger
        perf_interval: Seconds between CPU/FPS reports; 0 disables them
    """
    cycles_per_frame: int = 10
    modern_mode: bool = True
    strict_load: bool = False
    seed: int = 0
    log_level: str = "INFO"
    perf_interval: float = 3.0


class Chip8Machine:
    """Single CHIP-8 interpreter instance driven from one thread of control."""

    def __init__(self, config: Optional[MachineConfig] = None, logger: Optional[EmulatorLogger] = None):
        self.config = config or MachineConfig()
        self.logger = logger or EmulatorLogger(log_level=self.config.log_level)
        self.perf = PerfCounter(self.logger, self.config.perf_interval)
        self.state: EmulatorState = create_state(
            jax.random.PRNGKey(self.config.seed), modern_mode=self.config.modern_mode
        )
        self._program = b""

    # Loading

    def load(self, data: bytes, source: str = "program") -> None:
        """Reset the machine and load ``data`` at 0x200."""
        self.state = load_rom(self.state, data, strict=self.config.strict_load)
        self._program = bytes(data)[:MAX_ROM_SIZE]
        self.logger.log_load(source, len(data), MAX_ROM_SIZE)

    def load_file(self, path: str) -> None:
        with open(path, "rb") as f:
            data = f.read()
        self.load(data, source=path)

    def reload(self) -> None:
        """Reset and reload the last program."""
        self.state = load_rom(self.state, self._program)
        self.logger.debug("Reloaded program")

    # Execution

    @property
    def halted(self) -> bool:
        return int(self.state.fault) != Fault.NONE

    def _check_fault(self) -> None:
        error = fault_error(self.state)
        if error is not None:
            self.logger.log_fault(error)
            raise error

    def step(self) -> None:
        """Execute exactly one instruction."""
        self._check_fault()
        self.state = _jit_step(self.state)
        self._check_fault()
        self.perf.count_cycles()

    def tick(self) -> None:
        """Apply one 60 Hz timer decrement."""
        self.state = _jit_tick(self.state)

    def run_frame(self) -> None:
        """Execute one frame worth of instructions, then tick the timers.

        A frame that halts on a fault raises before it is counted.
        """
        self._check_fault()
        self.state = run_frame(self.state, self.config.cycles_per_frame)
        self._check_fault()
        self.perf.count_cycles(self.config.cycles_per_frame)
        self.perf.count_frame()

    def run_frames(self, n: int, progress: bool = False) -> None:
        """Execute ``n`` frames inside a single jitted scan."""
        self._check_fault()
        cycles = self.config.cycles_per_frame
        if progress:
            self.state = _run_frames_with_progress(self.state, n, cycles)
        else:
            self.state = _run_frames(self.state, n, cycles)
        self._check_fault()
        self.perf.count_cycles(n * cycles)
        self.perf.count_frame(n)

    @property
    def elapsed(self) -> float:
        """Machine time covered by the frames run so far, in seconds."""
        return self.perf.total_frames / TIMER_FREQUENCY

    # Input

    def set_keys(self, keys: Sequence[bool]) -> None:
        self.state = set_keypad(self.state, keys)

    def press_key(self, key: int) -> None:
        self.state = press_key(self.state, key)

    def release_key(self, key: int) -> None:
        self.state = release_key(self.state, key)

    # Snapshots

    def registers(self) -> np.ndarray:
        """Copy of V0..VF."""
        return np.array(self.state.V, dtype=np.uint8)

    @property
    def pc(self) -> int:
        return int(self.state.pc)

    @property
    def index(self) -> int:
        return int(self.state.I)

    @property
    def sp(self) -> int:
        return int(self.state.stack.pointer)

    @property
    def delay_timer(self) -> int:
        return int(self.state.delay_timer)

    @property
    def sound_timer(self) -> int:
        return int(self.state.sound_timer)

    @property
    def sound_on(self) -> bool:
        return bool(is_sound_on(self.state))

    def memory_window(self, start: int, length: int) -> np.ndarray:
        """Copy of ``length`` bytes of memory starting at ``start``."""
        if start < 0 or length < 0 or start + length > MEMORY_SIZE:
            raise ValueError(f"Window 0x{start:03X}+{length} is outside memory")
        return np.array(self.state.memory[start:start + length], dtype=np.uint8)

    def program_dump(self) -> np.ndarray:
        """The memory region currently covered by the loaded program."""
        return self.memory_window(PROGRAM_START, len(self._program))

    def framebuffer(self) -> np.ndarray:
        """Copy of the display as a (64, 32) boolean array indexed [x, y]."""
        return np.array(self.state.display, dtype=np.bool_)

    def current_instruction(self) -> str:
        """Disassembly of the instruction at PC."""
        return disassemble(int(fetch(self.state)))

    def log_registers(self) -> None:
        self.logger.log_registers(
            self.registers(), self.pc, self.index, self.sp, self.delay_timer, self.sound_timer
        )
