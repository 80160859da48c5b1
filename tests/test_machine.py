"""Tests for the host-side Chip8Machine driver."""

import numpy as np
import pytest
from chipax import (
    Chip8Machine, MachineConfig, RomTooLargeError, UnsupportedOpcodeError,
    StackOverflowError, StackUnderflowError,
)
from chipax import machine as machine_module
from chipax.constants import MAX_ROM_SIZE
from chipax.emulator import run_frame
from chipax.logging import EmulatorLogger, PerfCounter
from conftest import rom


@pytest.fixture
def machine():
    config = MachineConfig(perf_interval=0)
    return Chip8Machine(config, EmulatorLogger(log_level="CRITICAL"))


class TestLoading:

    def test_load_and_snapshot(self, machine):
        machine.load(rom(0x6A42, 0xA123))
        assert machine.pc == 0x200
        assert list(machine.program_dump()) == [0x6A, 0x42, 0xA1, 0x23]

        machine.step()
        machine.step()

        registers = machine.registers()
        assert registers.dtype == np.uint8
        assert registers[0xA] == 0x42
        assert machine.index == 0x123
        assert machine.pc == 0x204

    def test_load_file(self, machine, tmp_path):
        path = tmp_path / "test.ch8"
        path.write_bytes(rom(0x00E0, 0x1200))
        machine.load_file(str(path))
        assert machine.current_instruction() == "CLS"

    def test_strict_load(self):
        machine = Chip8Machine(MachineConfig(strict_load=True), EmulatorLogger(log_level="CRITICAL"))
        with pytest.raises(RomTooLargeError):
            machine.load(bytes(MAX_ROM_SIZE + 1))

    def test_lenient_load_truncates_dump(self, machine):
        machine.load(bytes(MAX_ROM_SIZE + 5))
        assert len(machine.program_dump()) == MAX_ROM_SIZE

    def test_reload_restarts_program(self, machine):
        machine.load(rom(0x6001, 0x7001, 0x1202))
        machine.run_frame()
        assert machine.registers()[0] > 1

        machine.reload()

        assert machine.pc == 0x200
        assert machine.registers()[0] == 0
        assert list(machine.program_dump()) == [0x60, 0x01, 0x70, 0x01, 0x12, 0x02]


class TestSnapshots:

    def test_memory_window(self, machine):
        machine.load(rom(0x1234))
        assert list(machine.memory_window(0x200, 2)) == [0x12, 0x34]
        assert list(machine.memory_window(0x050, 5)) == [0xF0, 0x90, 0x90, 0x90, 0xF0]

    @pytest.mark.parametrize("start,length", [(-1, 2), (0xFFF, 2), (0, 4097), (0, -1)])
    def test_memory_window_out_of_range(self, machine, start, length):
        with pytest.raises(ValueError):
            machine.memory_window(start, length)

    def test_framebuffer(self, machine):
        machine.load(rom(0xA050, 0xD005))
        machine.step()
        machine.step()
        frame = machine.framebuffer()
        assert frame.shape == (64, 32)
        assert frame.dtype == np.bool_
        assert frame[0, 0] and frame[3, 0] and not frame[4, 0]

    def test_current_instruction(self, machine):
        machine.load(rom(0x6005, 0xD125))
        assert machine.current_instruction() == "LD V0, 0x05"
        machine.step()
        assert machine.current_instruction() == "DRW V1, V2, 5"


class TestFaults:

    def test_unsupported_opcode_raises(self, machine):
        machine.load(rom(0x6001, 0xE000))
        machine.step()
        with pytest.raises(UnsupportedOpcodeError) as excinfo:
            machine.step()
        assert excinfo.value.opcode == 0xE000
        assert excinfo.value.pc == 0x202
        assert machine.halted

    def test_halted_machine_keeps_raising(self, machine):
        machine.load(rom(0xE000))
        with pytest.raises(UnsupportedOpcodeError):
            machine.step()
        with pytest.raises(UnsupportedOpcodeError):
            machine.run_frame()

    def test_stack_underflow_raises(self, machine):
        machine.load(rom(0x00EE))
        with pytest.raises(StackUnderflowError):
            machine.step()

    def test_stack_overflow_raises(self, machine):
        machine.load(rom(0x2200))
        with pytest.raises(StackOverflowError):
            machine.run_frames(2)
        assert machine.sp == 16

    def test_reload_clears_fault(self, machine):
        machine.load(rom(0x00EE))
        with pytest.raises(StackUnderflowError):
            machine.step()
        machine.reload()
        assert not machine.halted


class TestTiming:

    def test_run_frame_ticks_timers(self, machine):
        machine.load(rom(0x603C, 0xF015, 0xF018, 0x1206))  # DT = ST = 60
        machine.run_frame()
        assert machine.delay_timer == 59
        assert machine.sound_on

        machine.run_frames(59)
        assert machine.delay_timer == 0
        assert machine.sound_timer == 0
        assert not machine.sound_on

    def test_manual_tick(self, machine):
        machine.load(rom(0x6002, 0xF015))
        machine.step()
        machine.step()
        machine.tick()
        assert machine.delay_timer == 1

    def test_keys(self, machine):
        machine.load(rom(0xF30A))
        machine.step()
        assert machine.pc == 0x200

        machine.press_key(0x9)
        machine.step()
        assert machine.registers()[3] == 0x9
        assert machine.pc == 0x202

        machine.release_key(0x9)
        machine.set_keys([True] + [False] * 15)
        assert bool(machine.state.keypad[0])

    def test_perf_counts(self, machine):
        machine.load(rom(0x1200))
        machine.run_frame()
        machine.run_frames(3)
        assert machine.perf.total_frames == 4
        assert machine.perf.total_cycles == 4 * machine.config.cycles_per_frame
        assert machine.elapsed == pytest.approx(4 / 60)

    def test_halting_frame_is_not_counted(self, machine):
        machine.load(rom(0x6001, 0xE000))
        with pytest.raises(UnsupportedOpcodeError):
            machine.run_frame()
        assert machine.perf.total_cycles == 0
        assert machine.perf.total_frames == 0

    def test_halting_step_is_not_counted(self, machine):
        machine.load(rom(0x6001, 0xE000))
        machine.step()
        with pytest.raises(UnsupportedOpcodeError):
            machine.step()
        assert machine.perf.total_cycles == 1

    def test_run_frames_traces_once(self, machine, monkeypatch):
        """Repeated runs of the same length reuse the compiled scan."""
        traces = []

        def counting_run_frame(state, cycles):
            traces.append(cycles)
            return run_frame(state, cycles)

        monkeypatch.setattr(machine_module, "run_frame", counting_run_frame)
        machine.config.cycles_per_frame = 7
        machine.load(rom(0x1200))

        machine.run_frames(3)
        first = len(traces)
        machine.run_frames(3)
        machine.reload()
        machine.run_frames(3)

        assert first >= 1
        assert len(traces) == first
        assert machine.perf.total_frames == 9

    def test_run_frames_with_progress(self, machine, capsys):
        machine.load(rom(0x6003, 0xF015, 0x1204))
        machine.run_frames(4, progress=True)
        assert machine.delay_timer == 0
        assert machine.perf.total_frames == 4


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


class RecordingLogger(EmulatorLogger):
    def __init__(self):
        super().__init__(log_level="CRITICAL")
        self.reports = []

    def log_perf(self, cpu_hz, fps):
        self.reports.append((cpu_hz, fps))


class TestPerfCounter:

    def test_reports_after_interval(self):
        clock = FakeClock()
        logger = RecordingLogger()
        perf = PerfCounter(logger, interval=3.0, clock=clock)

        for _ in range(180):
            perf.count_cycles(10)
            perf.count_frame()
        assert logger.reports == []

        clock.now = 3.0
        perf.count_frame()

        cpu_hz, fps = logger.reports[0]
        assert cpu_hz == pytest.approx(600.0)
        assert fps == pytest.approx(181 / 3.0)
        assert perf.cycles == 0
        assert perf.total_cycles == 1800

    def test_disabled(self):
        clock = FakeClock()
        logger = RecordingLogger()
        perf = PerfCounter(logger, interval=0, clock=clock)
        clock.now = 100.0
        perf.count_cycles(5)
        assert logger.reports == []
        assert perf.rates() == pytest.approx((0.05, 0.0))
