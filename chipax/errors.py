"""Exceptions raised at the host boundary when the interpreter halts."""

from typing import Optional

from chipax.state import EmulatorState, Fault


class Chip8Error(Exception):
    """Base class for fatal interpreter errors."""


class UnsupportedOpcodeError(Chip8Error):
    """The word at PC decodes to no known instruction."""

    def __init__(self, opcode: int, pc: int):
        self.opcode = opcode
        self.pc = pc
        super().__init__(f"Unsupported opcode 0x{opcode:04X} at 0x{pc:03X}")


class ResourceExhaustedError(Chip8Error):
    """A fixed-size machine resource ran out."""


class StackOverflowError(ResourceExhaustedError):
    def __init__(self, pc: int):
        self.pc = pc
        super().__init__(f"Call stack overflow at 0x{pc:03X}")


class StackUnderflowError(ResourceExhaustedError):
    def __init__(self, pc: int):
        self.pc = pc
        super().__init__(f"Return with empty call stack at 0x{pc:03X}")


class RomTooLargeError(Chip8Error):
    """The program image does not fit between 0x200 and the end of memory."""

    def __init__(self, size: int, capacity: int):
        self.size = size
        self.capacity = capacity
        super().__init__(f"ROM is {size} bytes, only {capacity} bytes available")


def fault_error(state: EmulatorState) -> Optional[Chip8Error]:
    """Build the exception matching ``state.fault``, or None for a healthy state."""
    fault = Fault(int(state.fault))
    pc = int(state.pc)
    if fault == Fault.UNSUPPORTED_OPCODE:
        return UnsupportedOpcodeError(int(state.opcode), pc)
    if fault == Fault.STACK_OVERFLOW:
        return StackOverflowError(pc)
    if fault == Fault.STACK_UNDERFLOW:
        return StackUnderflowError(pc)
    return None


def raise_for_fault(state: EmulatorState) -> None:
    """Raise the exception matching ``state.fault``, if any."""
    error = fault_error(state)
    if error is not None:
        raise error
