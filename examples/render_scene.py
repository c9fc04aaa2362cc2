#!/usr/bin/env python3
"""Render a scene file to an image.

Usage:
    python -m examples.render_scene SCENE OUTPUT [options]

Arguments:
    SCENE               Scene file (JSON)
    OUTPUT              Output image path; the format follows the extension

Options:
    --watch, -w         Re-render whenever the scene file changes
    --open, -o          Show the first render in a preview window
    --arch ARCH         Taichi backend: cpu or cuda (default: cpu)
    --threads N         Number of CPU threads (default: all cores)
    --tile-size N       Pixels per kernel launch (default: 1024)
    --quiet             Suppress progress output

Example:
    python -m examples.render_scene scenes/balls.json balls.png --open
"""

from __future__ import annotations

import argparse
import logging
import sys
import time
from pathlib import Path

import taichi as ti
from tqdm import tqdm

# Seconds between modification time checks in watch mode
WATCH_INTERVAL = 0.5


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="Render a scene file with the Whitted ray tracer.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("scene", type=Path, help="Scene file (JSON)")
    parser.add_argument("output", type=Path, help="Output image path")
    parser.add_argument(
        "--watch",
        "-w",
        action="store_true",
        help="Re-render whenever the scene file changes",
    )
    parser.add_argument(
        "--open",
        "-o",
        action="store_true",
        help="Show the first render in a preview window",
    )
    parser.add_argument(
        "--arch",
        choices=("cpu", "cuda"),
        default="cpu",
        help="Taichi backend (default: cpu)",
    )
    parser.add_argument(
        "--threads",
        type=int,
        default=None,
        help="Number of CPU threads (default: all cores)",
    )
    parser.add_argument(
        "--tile-size",
        type=int,
        default=1024,
        help="Pixels per kernel launch (default: 1024)",
    )
    parser.add_argument(
        "--quiet",
        action="store_true",
        help="Suppress progress output",
    )
    return parser.parse_args(argv)


def validate_paths(scene: Path, output: Path) -> str | None:
    """Return an error message if the paths cannot be used, else None."""
    if not scene.is_file():
        return f"Scene file not found: {scene}"
    if output.is_dir():
        return f"Output path is a directory: {output}"
    return None


def render_once(scene_path: Path, output_path: Path, tile_size: int = 1024, quiet: bool = False):
    """Load, render and save one scene.

    Failures are reported and the render is skipped.

    Returns:
        The rendered RGBA8 image, or None if loading, rendering or saving
        failed.
    """
    # Lazy imports to allow Taichi initialization first
    from src.raytrace.core.render import render
    from src.raytrace.preview.export import save_png
    from src.raytrace.scene.loader import SceneLoadError, load_scene

    start_time = time.time()
    try:
        scene = load_scene(scene_path)
    except SceneLoadError as e:
        print(f"Error: {e}", file=sys.stderr)
        return None

    total = scene.camera.pixels
    with tqdm(total=total, unit="px", unit_scale=True, disable=quiet, desc=scene_path.name) as bar:

        def progress_callback(done: int, _total: int) -> None:
            bar.update(done - bar.n)

        try:
            pixels = render(scene, tile_size=tile_size, callback=progress_callback)
        except (ValueError, RuntimeError) as e:
            print(f"Error: render failed: {e}", file=sys.stderr)
            return None

    try:
        save_png(pixels, output_path)
    except (OSError, ValueError) as e:
        print(f"Error: cannot save {output_path}: {e}", file=sys.stderr)
        return None

    if not quiet:
        print(f"Saved to: {output_path.absolute()}")
        print(f"Total time: {time.time() - start_time:.2f}s")
    return pixels


def watch(scene_path: Path, output_path: Path, tile_size: int, quiet: bool) -> None:
    """Re-render whenever the scene file's modification time changes.

    Runs until interrupted.
    """
    last_mtime = scene_path.stat().st_mtime
    if not quiet:
        print(f"Watching {scene_path} for changes (Ctrl+C to stop)")
    while True:
        time.sleep(WATCH_INTERVAL)
        try:
            mtime = scene_path.stat().st_mtime
        except OSError:
            # Editors may replace the file; wait for it to reappear
            continue
        if mtime != last_mtime:
            last_mtime = mtime
            render_once(scene_path, output_path, tile_size=tile_size, quiet=quiet)


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.WARNING if args.quiet else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )

    error = validate_paths(args.scene, args.output)
    if error is not None:
        print(f"Error: {error}", file=sys.stderr)
        return 1

    init_kwargs = {"arch": ti.cuda if args.arch == "cuda" else ti.cpu, "default_fp": ti.f64}
    if args.threads is not None:
        init_kwargs["cpu_max_num_threads"] = args.threads
    ti.init(**init_kwargs)

    pixels = render_once(args.scene, args.output, tile_size=args.tile_size, quiet=args.quiet)

    if args.open and pixels is not None:
        from src.raytrace.preview.display import show_preview

        show_preview(pixels, title=str(args.scene), block=not args.watch)

    if args.watch:
        try:
            watch(args.scene, args.output, args.tile_size, args.quiet)
        except KeyboardInterrupt:
            pass
    elif pixels is None:
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
