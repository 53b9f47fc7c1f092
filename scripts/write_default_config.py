#!/usr/bin/env python3
"""Write the default simulation configuration as YAML."""
from __future__ import annotations

import argparse
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1] / "src"))

from boidsim.sim.core.config import SimulationConfig, dump_config  # noqa: E402


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Write the default boids configuration as YAML.")
    parser.add_argument(
        "--output",
        type=Path,
        default=Path("config/default.yaml"),
        help="File to write the configuration into.",
    )
    parser.add_argument("--overwrite", action="store_true", help="Overwrite an existing file.")
    return parser.parse_args()


def main() -> None:
    args = parse_args()
    output: Path = args.output
    if output.exists() and not args.overwrite:
        raise FileExistsError(f"{output} already exists. Use --overwrite to replace.")
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(dump_config(SimulationConfig()))
    print(f"Wrote default configuration to {output}")


if __name__ == "__main__":
    main()
