"""
CLI for latentnav package.

Usage:
    latentnav viz [--config PATH] [--server-url URL] [--mock] [--mode MODE] [--port PORT] [--share]
    latentnav bake --x-axis I --y-axis J [--range R] [--grid-size G] [--out FILE.csv] [--mock]
    latentnav render TIMELINE.json [--fps N] [--download PATH] [--mock]
"""

import argparse
import asyncio
import json
import sys
from pathlib import Path

import pandas as pd
from tqdm import tqdm

from ..config import load_config
from ..core.errors import LatentNavError, ValidationError
from ..core.grid import CacheGridBuilder
from ..core.state import AxisBinding
from ..core.timeline import KeyframeTimeline
from ..visualization.navigator import Navigator, create_service


def _config_from_args(args, **extra):
    return load_config(
        args.config,
        server_url=args.server_url,
        use_mock=True if args.mock else None,
        **extra,
    )


def visualize_command(args):
    """Launch the visualization app."""
    from ..visualization.app import launch

    config = _config_from_args(args, composition_mode=args.mode)
    launch(Navigator(config), port=args.port, share=args.share)


async def _bake(args, config, service):
    binding = AxisBinding(args.x_axis, args.y_axis).validate(config.latent_dim)
    half = args.range if args.range is not None else config.axis_range
    builder = CacheGridBuilder(
        service,
        latent_dim=config.latent_dim,
        grid_size=config.grid_size,
        chunk_size=config.chunk_size,
    )
    with tqdm(total=config.grid_size ** 2, desc="Baking") as bar:
        def progress(done, total):
            bar.update(done - bar.n)

        return await builder.build(binding, half, half, progress=progress)


def bake_command(args):
    """Build a preview grid against the generation service and report it."""
    config = _config_from_args(
        args, grid_size=args.grid_size, chunk_size=args.chunk_size
    )

    service = create_service(config)

    async def run():
        try:
            return await _bake(args, config, service)
        finally:
            await service.close()

    try:
        grid = asyncio.run(run())
    except ValidationError as e:
        print(f"Error: {e}")
        sys.exit(1)

    df = pd.DataFrame(
        [(p.x, p.y, p.image is not None) for p in grid],
        columns=["x", "y", "has_image"],
    )
    print(f"Grid: {len(df)} points on axes ({args.x_axis}, {args.y_axis})")
    if args.out:
        out_path = Path(args.out)
        out_path.parent.mkdir(parents=True, exist_ok=True)
        df.to_csv(out_path, index=False)
        print(f"Saved {out_path}")


def render_command(args):
    """Send a saved keyframe timeline to the render endpoint."""
    timeline_path = Path(args.timeline)
    if not timeline_path.exists():
        print(f"Error: Timeline not found: {timeline_path}")
        sys.exit(1)

    with open(timeline_path, "r", encoding="utf-8") as f:
        payload = json.load(f)

    config = _config_from_args(args)
    fps = args.fps if args.fps is not None else config.fps

    service = create_service(config)

    async def run():
        try:
            timeline = KeyframeTimeline.from_payload(payload, default_duration=config.default_duration)
            if len(timeline) < 2:
                raise ValidationError("Add at least 2 keyframes to render a video.")
            print(f"Rendering {len(timeline)} keyframes at {fps} fps...")
            url = await service.render_video(timeline.to_payload(), fps=fps)
            print(f"Video: {url}")
            if args.download:
                path = await service.download_video(url, Path(args.download))
                print(f"Saved {path}")
            return url
        finally:
            await service.close()

    try:
        asyncio.run(run())
    except LatentNavError as e:
        print(f"Error: {e}")
        sys.exit(1)


def _add_service_args(p):
    p.add_argument(
        "--config",
        type=str,
        default=None,
        help="JSON config file"
    )
    p.add_argument(
        "--server-url",
        type=str,
        default=None,
        help="Generation server URL (default: config or LATENTNAV_SERVER_URL)"
    )
    p.add_argument(
        "--mock",
        action="store_true",
        help="Use the offline mock service"
    )


def main():
    parser = argparse.ArgumentParser(
        prog="latentnav",
        description="Latent space navigator"
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Visualize subcommand
    viz_parser = subparsers.add_parser(
        "visualize",
        aliases=["viz"],
        help="Launch the navigator app"
    )
    _add_service_args(viz_parser)
    viz_parser.add_argument(
        "--mode",
        type=str,
        default=None,
        choices=["direct", "base_delta"],
        help="Vector composition mode"
    )
    viz_parser.add_argument(
        "--port",
        type=int,
        default=7860,
        help="Port to run server on"
    )
    viz_parser.add_argument(
        "--share",
        action="store_true",
        help="Create public share link"
    )

    # Bake subcommand
    bake_parser = subparsers.add_parser(
        "bake",
        help="Build a preview grid for one axis pair"
    )
    _add_service_args(bake_parser)
    bake_parser.add_argument(
        "--x-axis",
        type=int,
        required=True,
        help="Component on the X axis"
    )
    bake_parser.add_argument(
        "--y-axis",
        type=int,
        required=True,
        help="Component on the Y axis"
    )
    bake_parser.add_argument(
        "--range",
        type=float,
        default=None,
        help="Half-range on both axes (default: config axis_range)"
    )
    bake_parser.add_argument(
        "--grid-size",
        type=int,
        default=None,
        help="Points per axis"
    )
    bake_parser.add_argument(
        "--chunk-size",
        type=int,
        default=None,
        help="Vectors per batch request"
    )
    bake_parser.add_argument(
        "--out",
        type=str,
        default=None,
        help="Write grid points to CSV"
    )

    # Render subcommand
    render_parser = subparsers.add_parser(
        "render",
        help="Render a saved keyframe timeline to video"
    )
    _add_service_args(render_parser)
    render_parser.add_argument(
        "timeline",
        type=str,
        help="Timeline JSON (list of keyframe payloads)"
    )
    render_parser.add_argument(
        "--fps",
        type=int,
        default=None,
        help="Frames per second (default: config fps)"
    )
    render_parser.add_argument(
        "--download",
        type=str,
        default=None,
        help="Download the rendered video to this path"
    )

    args = parser.parse_args()

    if args.command is None:
        parser.print_help()
        sys.exit(1)

    if args.command in ("visualize", "viz"):
        visualize_command(args)
    elif args.command == "bake":
        bake_command(args)
    elif args.command == "render":
        render_command(args)


if __name__ == "__main__":
    main()
