import time

import jax

from chipax import create_state, load_rom, run_frame, disassemble
from chipax.rendering import save_frame

# Draws the digits 0-F across two rows, then spins on the final jump
PROGRAM = [
    0x00E0,  # 200: CLS
    0x6000,  # 202: V0 = digit
    0x6100,  # 204: V1 = x
    0x6201,  # 206: V2 = y
    0xF029,  # 208: I = glyph(V0)
    0xD125,  # 20A: draw at (V1, V2)
    0x7001,  # 20C: V0 += 1
    0x7108,  # 20E: V1 += 8
    0x4140,  # 210: if V1 == 64
    0x121A,  # 212:   jump to the row break
    0x3010,  # 214: if V0 != 16
    0x1208,  # 216:   draw the next digit
    0x1218,  # 218: spin
    0x6100,  # 21A: V1 = 0
    0x7208,  # 21C: V2 += 8
    0x1214,  # 21E: back to the digit check
]

if __name__ == "__main__":
    data = b"".join(word.to_bytes(2, "big") for word in PROGRAM)
    for address, word in enumerate(PROGRAM):
        print(f"0x{0x200 + 2 * address:03X}: {disassemble(word)}")

    state = load_rom(create_state(jax.random.PRNGKey(0)), data)

    @jax.jit
    def rollout(state):
        def frame(state, _):
            state = run_frame(state, 10)
            return state, state.display
        return jax.lax.scan(frame, state, length=60)

    # Measure compilation time
    start_compile = time.time()
    compiled = jax.block_until_ready(rollout.lower(state).compile())
    end_compile = time.time()

    print("Compilation time (s):", end_compile - start_compile)

    # Measure execution time
    start_exec = time.time()
    final_state, frames = jax.block_until_ready(compiled(state))
    end_exec = time.time()

    print("Execution time (s):", end_exec - start_exec)
    print("Stopped at", disassemble(int(final_state.opcode)), f"(PC 0x{int(final_state.pc):03X})")

    save_frame(final_state.display, "digits.png", color_scheme="amber")
