"""Headless CHIP-8 runner.

Loads a ROM, runs it for a number of 60 Hz frames and reports the final machine
state. Settings come from ``conf/config.yaml`` and can be overridden on the
command line, e.g. ``python run.py rom=roms/ibm.ch8 frames=120 screenshot=ibm.png``.
"""

import hydra
from omegaconf import DictConfig, OmegaConf

from chipax import Chip8Machine, Chip8Error, MachineConfig
from chipax.logging import EmulatorLogger
from chipax.rendering import save_frame


@hydra.main(version_base=None, config_path="conf", config_name="config")
def main(cfg: DictConfig) -> None:
    cfg = OmegaConf.to_container(cfg, resolve=True, throw_on_missing=True)

    config = MachineConfig(**cfg["machine"])
    logger = EmulatorLogger(log_level=config.log_level)
    machine = Chip8Machine(config, logger)

    machine.load_file(cfg["rom"])
    try:
        machine.run_frames(cfg["frames"], progress=cfg["progress"])
    except Chip8Error:
        machine.log_registers()
        raise SystemExit(1)

    logger.info(f"Ran {cfg['frames']} frames ({machine.elapsed:.1f}s of machine time)")
    logger.info(f"Next instruction: {machine.current_instruction()}")
    machine.log_registers()

    if cfg["screenshot"]:
        save_frame(machine.framebuffer(), cfg["screenshot"], scale=cfg["scale"], color_scheme=cfg["color_scheme"])
        logger.info(f"Framebuffer saved to {cfg['screenshot']}")


if __name__ == "__main__":
    main()
