"""One-off script for debugging a real generate -> refine -> export round."""

from __future__ import annotations

import argparse
import asyncio
from pathlib import Path

from config.settings import load_config
from vectorcraft.generation.models import GenerationMode, GenerationRequest, Resolution
from vectorcraft.services.workbench import build_workbench
from vectorcraft.utils.logging import setup_logging


async def run(prompt: str, refine: str, backend: str | None, out_dir: Path) -> None:
    # 1. Real configuration and services; history goes to the configured storage.
    config = load_config()
    setup_logging(config)
    workbench = build_workbench(config)

    # 2. Create from text, then refine in place.
    request = GenerationRequest(
        mode=GenerationMode.CREATE,
        text=prompt,
        technical_spec="gentle pulse animation on hover",
        resolution=Resolution(256, 256),
    )
    artifact = await workbench.generate(request, backend=backend)
    print("generated:", artifact.id if artifact else None)
    if refine:
        artifact = await workbench.refine(refine, backend=backend)
        print("refined:", artifact.version if artifact else None)

    # 3. Write the bundle next to the script output.
    payload = await workbench.export("zip")
    if payload is None:
        print("Nothing exported.")
        return
    out_dir.mkdir(parents=True, exist_ok=True)
    target = out_dir / payload.filename
    target.write_bytes(payload.data)
    print("bundle written:", target.resolve())


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Generate, refine and export one SVG.")
    parser.add_argument("--prompt", default="a friendly robot mascot waving")
    parser.add_argument("--refine", default="add a soft drop shadow")
    parser.add_argument("--backend", default=None)
    parser.add_argument("--out", type=Path, default=Path("debug_exports"))
    return parser.parse_args()


if __name__ == "__main__":
    args = parse_args()
    asyncio.run(run(args.prompt, args.refine, args.backend, args.out))
